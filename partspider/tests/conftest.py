"""Shared fixtures: small catalogs, an in-memory emitter and a crawl context."""

import io
from typing import List

import pytest
from bs4 import BeautifulSoup

from partspider.catalog import load_catalog_rows
from partspider.dispatcher import CrawlContext, Page
from partspider.emitter import Emitter
from partspider.frontier import Frontier
from partspider.models import VendorTarget
from partspider.reconcile import Reconciler

HEADER = ["Order", "Section", "Name", "Part #", "URL", "Model URL", "Onshape URL",
          "Extra 1", "", "", "", "", "", "", "Status", "Notes"]


def catalog_row(order, section, name, sku, url="", model_url="", status="Done", notes=""):
    return [str(order), section, name, sku, url, model_url, "", "", "", "", "", "", "", "", status, notes]


def soup_of(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


@pytest.fixture
def sample_catalog():
    rows = [
        HEADER,
        catalog_row(1, "STRUCTURE > X-Rail®", "Goodie", "REV-41-1562",
                    "https://vendor.example/x/", "https://vendor.example/cad/REV-41-1562.STEP"),
        catalog_row(2, "MOTION > Hubs > Servo Hubs", "Servo Hub", "HUB-1",
                    "https://vendor.example/hub/"),
        catalog_row(3, "MOTION > Bushings", "Bronze Bushing", "BB-8",
                    "https://vendor.example/bushing/"),
        catalog_row(4, "HARDWARE > Lubricants", "Grease", "ASCC8074",
                    "https://vendor.example/grease/"),
        catalog_row(5, "--- Section break ---", "-- Gears --", ""),
    ]
    return load_catalog_rows(rows)


@pytest.fixture
def target():
    return VendorTarget(
        key="test",
        outfile="test.txt",
        spreadsheet_id="",
        seed="https://vendor.example/",
        root_urls=["https://vendor.example/"],
        section_equivalents=[("MOTION > Hubs > Servo Hubs", "MOTION > Servos & Accessories > Servo Hubs")],
    )


@pytest.fixture
def emitter(sample_catalog, target):
    em = Emitter(io.StringIO(), Reconciler.for_target(sample_catalog, target))
    em.write_header()
    return em


@pytest.fixture
def submitted():
    return []


@pytest.fixture
def ctx(target, emitter, sample_catalog, submitted):
    frontier = Frontier(target.seed)
    frontier.bind(lambda url: submitted.append(url) or True)
    return CrawlContext(target=target, frontier=frontier, emitter=emitter, catalog=sample_catalog)


@pytest.fixture
def make_page():
    def _make(html: str, url: str = "https://vendor.example/page/", breadcrumb: str = "", discontinued=False):
        return Page(url=url, soup=soup_of(html), breadcrumb=breadcrumb, discontinued=discontinued)
    return _make


@pytest.fixture
def output_lines(emitter):
    """Callable returning the lines written so far, without the header."""
    def _lines() -> List[str]:
        return emitter.stream.getvalue().splitlines()[1:]
    return _lines


@pytest.fixture
def fields():
    """Callable splitting one output line into its columns."""
    return lambda line: line.split("`")


@pytest.fixture
def build_catalog():
    """Callable building a catalog from ``(order, section, name, sku, url, model_url)`` tuples."""
    def _build(*rows):
        return load_catalog_rows([HEADER] + [catalog_row(*row) for row in rows])
    return _build


@pytest.fixture
def parse_html():
    return soup_of

"""Data models for catalog parts, categories, downloads and vendor targets."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from bs4 import BeautifulSoup, Tag

    from partspider.dispatcher import Strategy
    from partspider.downloads import DownloadIndex
    from partspider.emitter import Emitter

__all__ = [
    "EXTRA_SLOTS",
    "SpiderStatus",
    "PartData",
    "Category",
    "DownloadEntry",
    "BreadcrumbItem",
    "VendorTarget",
]

# Number of free-form "extra" columns carried by each part
EXTRA_SLOTS = 7


class SpiderStatus(Enum):
    """Outcome of reconciling one record against the reference catalog.

    The value is the label written to the output file.
    """

    NEW = "New"
    NOT_FOUND_BY_SPIDER = "Not Found by Spider"
    CHANGED = "Changed"
    DISCONTINUED = "Discontinued"
    UNCHANGED = "Same"

    def __str__(self) -> str:
        return self.value


@dataclass
class PartData:
    """One part: either a row of the reference catalog or an extracted product."""

    order: int = 0
    section: str = ""
    name: str = ""
    sku: str = ""
    url: str = ""
    model_url: str = ""
    extra: List[str] = field(default_factory=lambda: [""] * EXTRA_SLOTS)
    onshape_url: str = ""
    status: str = ""
    spider_status: SpiderStatus = SpiderStatus.NOT_FOUND_BY_SPIDER
    notes: str = ""

    @property
    def combined_name(self) -> str:
        return f"{self.name} {self.sku}".strip()

    def set_extras(self, values: Optional[List[str]]) -> None:
        """Fill the extra slots in order; values past the last slot are dropped."""
        self.extra = [""] * EXTRA_SLOTS
        for i, value in enumerate((values or [])[:EXTRA_SLOTS]):
            self.extra[i] = value

    def describe(self) -> str:
        return (
            f"{self.order} SKU: '{self.sku}' Product: '{self.name}' "
            f"Model:'{self.model_url}' on page '{self.url}'"
        )


@dataclass
class Category:
    """A category observed in a breadcrumb trail."""

    name: str
    class_tag: str
    url: str = ""


@dataclass
class DownloadEntry:
    """A candidate model/drawing link found on one page."""

    url: str
    used: bool = False


@dataclass
class BreadcrumbItem:
    """One node of an on-page breadcrumb trail."""

    name: str
    class_tag: Optional[str] = None
    url: str = ""


# Signatures of the per-vendor callables
BreadcrumbExtractor = Callable[["BeautifulSoup"], List[BreadcrumbItem]]
DownloadCollector = Callable[["DownloadIndex", "Tag", str, "Emitter"], "DownloadIndex"]


@dataclass
class VendorTarget:
    """Everything needed to crawl and reconcile one vendor's catalog.

    Selected once at startup by key and never mutated afterwards.
    """

    key: str
    outfile: str
    spreadsheet_id: str
    seed: str
    presets: List[str] = field(default_factory=list)
    skip_pages: List[str] = field(default_factory=list)
    strip_sku: bool = False
    # Pages that legitimately match no strategy (site root and the like)
    root_urls: List[str] = field(default_factory=list)
    # Breadcrumb labels that never become part of a section path
    root_labels: List[str] = field(default_factory=list)
    section_name_deletes: List[str] = field(default_factory=list)
    section_allowed_map: Dict[str, str] = field(default_factory=dict)
    section_equivalents: List[Tuple[str, str]] = field(default_factory=list)
    download_renames: Dict[str, str] = field(default_factory=dict)
    # Download keys that any SKU on the page may claim
    download_generic_keys: List[str] = field(default_factory=list)
    download_collector: Optional[DownloadCollector] = None
    strategies: List["Strategy"] = field(default_factory=list)
    breadcrumb_extractor: Optional[BreadcrumbExtractor] = None
    discontinued_selector: Optional[str] = None

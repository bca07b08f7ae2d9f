"""Tests for the per-page download index and its collectors."""

import pytest

from partspider.downloads import (
    DownloadIndex,
    cad_title_key,
    collect_cad_links,
    collect_download_links,
    collect_title_links,
    normalize_title,
)


class TestTitles:
    @pytest.mark.parametrize("raw,expected", [
        ("1309-0016-1006 STEP File.zip", "1309-0016-1006"),
        ("585001 assembly", "585001"),
        ("  545360_1  ", "545360_1"),
    ])
    def test_normalize_title(self, raw, expected):
        assert normalize_title(raw) == expected

    @pytest.mark.parametrize("title,expected", [
        ("am-3284 32t Ninja Star Sprocket.STEP", "am-3284"),
        ("am-3284.stp", "am-3284"),
        ("STEP File", "STEP FILE"),
        ("Onshape Model Link", "ONSHAPE MODEL LINK"),
        ("Assembly Manual.pdf", None),
    ])
    def test_cad_title_key(self, title, expected):
        assert cad_title_key(title) == expected


class TestResolve:
    """The lookup chain from SKU to download URL."""

    def test_exact_key(self):
        index = DownloadIndex()
        index.add("1309-0016-1006", "https://cdn.example/1309-0016-1006.zip")
        assert index.resolve("1309-0016-1006") == "https://cdn.example/1309-0016-1006.zip"
        assert index.unused() == []

    def test_lower_case_key(self):
        index = DownloadIndex()
        index.add("am-3284", "https://cdn.example/a.step")
        assert index.resolve("AM-3284") == "https://cdn.example/a.step"

    def test_pack_suffix_stripped(self):
        index = DownloadIndex()
        index.add("BB-8", "https://cdn.example/bb.step")
        assert index.resolve("BB-8-PK4") == "https://cdn.example/bb.step"

    def test_generic_key(self):
        index = DownloadIndex(generic_keys=["ONSHAPE MODEL LINK", "STEP FILE"])
        index.add("STEP FILE", "https://cdn.example/part.step", "STEP")
        assert index.resolve("70-1234") == "https://cdn.example/part.step"

    def test_url_containing_sku(self):
        index = DownloadIndex()
        index.add("Gearbox Assembly", "https://cdn.example/files/585001.zip")
        assert index.resolve("585001") == "https://cdn.example/files/585001.zip"

    def test_rename_table(self):
        index = DownloadIndex(renames={"545361": "545360_1"})
        index.add("545360_1", "https://cdn.example/old.zip")
        assert index.resolve("545361") == "https://cdn.example/old.zip"

    def test_prefix_fallback(self):
        index = DownloadIndex()
        index.add("Gear CAD", "https://cdn.example/files/REV41-gear.step")
        assert index.resolve("REV41-1562") == "https://cdn.example/files/REV41-gear.step"

    def test_placeholder_when_nothing_matches(self):
        index = DownloadIndex()
        index.add("Other", "https://cdn.example/other.zip")
        assert index.resolve("XYZ") == "<NOMODEL:XYZ>"
        assert index.resolve("") == "<NOMODEL:>"

    def test_flavor_priority_and_claim(self):
        index = DownloadIndex()
        index.add("am-1000", "https://cdn.example/am-1000.step", "STEP")
        index.add("am-1000", "https://cad.onshape.com/documents/abc", "ONSHAPE")
        index.add("am-1000", "https://cdn.example/am-1000.slddrw", "DRAWING")
        assert index.resolve("am-1000") == "https://cad.onshape.com/documents/abc"
        assert index.unused() == []

    def test_claimed_entry_not_reused_by_url_search(self):
        index = DownloadIndex()
        index.add("Kit", "https://cdn.example/585001-kit.zip")
        assert index.resolve("585001") == "https://cdn.example/585001-kit.zip"
        assert index.resolve("585001-B").startswith("<NOMODEL")


class TestUnused:
    def test_informational_documents_not_reported(self, emitter, output_lines):
        index = DownloadIndex()
        index.add("Assembly Instructions", "https://cdn.example/a.pdf")
        index.add("1309-0016-1006", "https://cdn.example/hub.zip")
        assert index.report_unused(emitter, "https://vendor.example/hub/") == 1
        assert output_lines() == [
            "1`***Unused download '1309-0016-1006': https://cdn.example/hub.zip on https://vendor.example/hub/"
        ]


class TestCollectors:
    PAGE_URL = "https://vendor.example/hub/"

    def test_title_links(self, parse_html, emitter, output_lines):
        soup = parse_html("""
        <div class="wrap">
          <div class="productView"><h1>Hub</h1></div>
          <ul>
            <li><a class="product-downloadsList-listItem-link" title="1309-0016-1006 STEP File.zip"
                   href="https://cdn.example/hub.zip">STEP</a></li>
            <li><a class="product-downloadsList-listItem-link" title="1309-0016-1006"
                   href="https://cad.onshape.com/documents/hub">Onshape</a></li>
            <li><a class="product-downloadsList-listItem-link" href="https://cdn.example/x.zip">?</a></li>
          </ul>
        </div>
        """)
        index = collect_title_links(DownloadIndex(), soup.select_one("div.productView"), self.PAGE_URL, emitter)
        assert "1309-0016-1006" in index
        assert "ONSHAPE:1309-0016-1006" in index
        assert output_lines() == [f"1`***No Title found for url https://cdn.example/x.zip on {self.PAGE_URL}"]

    def test_download_links(self, parse_html, emitter, output_lines):
        soup = parse_html("""
        <section><div class="productView"></div>
          <a download href="https://cdn.example/rev-41-1562.step">REV-41-1562 STEP</a>
          <a download href="">Empty</a>
        </section>
        """)
        index = collect_download_links(DownloadIndex(), soup.select_one("div.productView"), self.PAGE_URL, emitter)
        assert index.resolve("REV-41-1562") == "https://cdn.example/rev-41-1562.step"
        assert output_lines() == [f"1`***No URL found associated with Empty on {self.PAGE_URL}"]

    def test_cad_links_ignore_documents(self, parse_html, emitter):
        soup = parse_html("""
        <div><div class="product-detail-container"></div>
          <a class="product-documents__link" href="https://cdn.example/am-3284.step">am-3284 Sprocket.STEP</a>
          <a class="product-documents__link" href="https://cdn.example/am-3284.slddrw">am-3284 Drawing.SLDDRW</a>
          <a class="product-documents__link" href="https://cdn.example/manual.pdf">Manual.pdf</a>
        </div>
        """)
        index = collect_cad_links(DownloadIndex(), soup.select_one("div.product-detail-container"),
                                  self.PAGE_URL, emitter)
        assert len(index) == 2
        assert index.resolve("am-3284") == "https://cdn.example/am-3284.step"
        assert index.unused() == []

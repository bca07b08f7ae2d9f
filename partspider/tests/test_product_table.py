"""Tests for header-driven product tables."""

from partspider.downloads import DownloadIndex
from partspider.product_table import (
    ColumnAction,
    classify_columns,
    emit_product_table,
    parse_product_table,
)

HUB_TABLE = """
<table>
  <thead><tr>
    <th>Part #</th><th>Length</th><th>Bore</th><th>A</th><th>Price</th><th>Material</th>
  </tr></thead>
  <tr><td>1309-0016-1006</td><td>8mm</td><td>6mm</td><td>6mm</td><td>$5.99</td><td>Aluminum</td></tr>
  <tr><td>1309-0016-0008</td><td>10mm</td><td>8mm</td><td>8mm</td><td>$6.99</td><td>Steel</td></tr>
</table>
"""

FIRST_ROW_HEADER_TABLE = """
<table><tbody>
  <tr><td><strong>SKU</strong></td><td><p>Tooth</p></td><td>A</td></tr>
  <tr><td><p>615238</p></td><td>32</td><td>1/4"</td></tr>
</tbody></table>
"""


class TestClassifyColumns:
    def test_known_headers(self):
        actions = [c.action for c in classify_columns(["Part #", "Wishlist", "Thread Size", "Bore A", "Color"])]
        assert actions == [
            ColumnAction.SKU,
            ColumnAction.SKIP,
            ColumnAction.KEEP_NAME,
            ColumnAction.KEEP_TO,
            ColumnAction.OUTPUT,
        ]

    def test_a_after_bore_is_skipped(self):
        assert classify_columns(["Bore", "A"])[1].action is ColumnAction.SKIP

    def test_lone_a_is_the_bore(self):
        assert classify_columns(["SKU", "A"])[1].action is ColumnAction.KEEP_BORE

    def test_headers_are_case_sensitive(self):
        assert classify_columns(["part #"])[0].action is ColumnAction.OUTPUT


class TestParseProductTable:
    def test_thead_table(self, parse_html):
        rows = parse_product_table(parse_html(HUB_TABLE).table)
        assert [r.sku for r in rows] == ["1309-0016-1006", "1309-0016-0008"]
        assert rows[0].name("Sonic Hub") == "Sonic Hub 8mm 6mm"
        assert rows[0].extras == ["Material:Aluminum"]

    def test_first_row_header(self, parse_html):
        rows = parse_product_table(parse_html(FIRST_ROW_HEADER_TABLE).table)
        assert len(rows) == 1
        assert rows[0].sku == "615238"
        assert rows[0].name("Sprocket") == 'Sprocket 32 Tooth 1/4" Bore'

    def test_table_without_part_numbers(self, parse_html):
        html = "<table><thead><tr><th>Size</th><th>Price</th></tr></thead><tr><td>1</td><td>2</td></tr></table>"
        assert parse_product_table(parse_html(html).table) is None


class TestEmitProductTable:
    def test_one_product_per_row(self, parse_html, emitter, output_lines, fields):
        index = DownloadIndex()
        index.add("1309-0016-1006", "https://cdn.example/hub-6.zip")
        emitter.output_category("MOTION > Hubs")

        assert emit_product_table(emitter, index, "Sonic Hub", "https://vendor.example/hubs/",
                                  parse_html(HUB_TABLE).table)
        lines = [fields(line) for line in output_lines()]
        assert len(lines) == 2
        assert lines[0][2] == "Sonic Hub 8mm 6mm"
        assert lines[0][6] == "https://cdn.example/hub-6.zip"
        assert lines[1][6] == "<NOMODEL:1309-0016-0008>"
        assert all(line[5] == "https://vendor.example/hubs/" for line in lines)
        assert lines[0][7] == "Material:Aluminum"

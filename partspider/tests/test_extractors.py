"""Tests for page strategies and the dispatcher."""

from functools import partial

import pytest

from partspider import link_extractors as links
from partspider import product_extractors as products
from partspider.dispatcher import Strategy, dispatch, process_page
from partspider.shutdown import ShutdownHandler

PAGE = "https://vendor.example/page/"


class TestLinkExtractors:
    def test_empty_sitemap_is_handled_quietly(self, ctx, make_page, submitted, output_lines):
        page = make_page('<?xml version="1.0"?><urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"></urlset>',
                         url="https://vendor.example/sitemap.xml")
        assert dispatch(ctx, page, [Strategy("sitemap", links.sitemap)])
        assert submitted == []
        assert output_lines() == []

    def test_sitemap_enqueues_every_location(self, ctx, make_page, submitted):
        page = make_page("""<urlset>
            <url><loc>https://vendor.example/a/</loc></url>
            <url><loc> https://vendor.example/b/ </loc></url>
            <url><loc>https://other.example/c/</loc></url>
        </urlset>""", url="https://vendor.example/sitemap.xml")
        assert links.sitemap(ctx, page)
        assert submitted == ["https://vendor.example/a/", "https://vendor.example/b/"]

    def test_nav_list_inherits_breadcrumb(self, ctx, make_page, submitted):
        page = make_page("""<ul class="navList">
            <li class="navList-item"><a class="navList-action" href="/motion/hubs/">Hubs</a></li>
        </ul>""", breadcrumb="MOTION")
        assert links.nav_list(ctx, page)
        assert ctx.frontier.breadcrumb_for("https://vendor.example/motion/hubs/") == "MOTION"

    def test_product_grid_skips_tab_panels(self, ctx, make_page, submitted):
        page = make_page("""
        <ul class="productGrid"><li class="product"><a data-card-type href="/hub/" title="Sonic Hub">x</a></li></ul>
        <div class="tab-content"><ul class="productGrid">
          <li class="product"><a data-card-type href="/recommended/" title="Other">y</a></li>
        </ul></div>""", breadcrumb="MOTION > Hubs")
        grid = partial(links.product_grid, containers="ul.productGrid", links="li.product a[data-card-type]")
        assert grid(ctx, page)
        assert submitted == ["https://vendor.example/hub/"]
        assert ctx.frontier.breadcrumb_for("https://vendor.example/hub/") == "MOTION > Hubs > Sonic Hub"

    def test_related_products_never_handle_the_page(self, ctx, make_page, submitted):
        page = make_page('<div class="related-products-grid"><a href="/gear/">Gear</a></div>', breadcrumb="X")
        related = partial(links.related_products, selector="div.related-products-grid a", with_breadcrumb=False)
        assert not related(ctx, page)
        assert submitted == ["https://vendor.example/gear/"]
        assert ctx.frontier.breadcrumb_for("https://vendor.example/gear/") == ""

    def test_lazy_load_subcategories(self, ctx, make_page, submitted):
        script = (
            r'var x = 1; window.stencilBootstrap("category", "{\"subcategories\":['
            r'{\"id\":1,\"url\":\"https://vendor.example/motion/hubs/\"},'
            r'{\"id\":2,\"url\":\"https://vendor.example/motion/gears/\"}],\"page\":1}").load();'
        )
        page = make_page(f"<script>{script}</script>", breadcrumb="MOTION")
        assert links.lazy_load(ctx, page)
        assert submitted == ["https://vendor.example/motion/hubs/", "https://vendor.example/motion/gears/"]

    def test_meta_refresh(self, ctx, make_page, submitted):
        page = make_page('<meta http-equiv="refresh" content="0;url=/moved/">')
        assert links.meta_refresh(ctx, page)
        assert submitted == ["https://vendor.example/moved/"]

    def test_empty_tag_page_is_an_error(self, ctx, make_page, output_lines):
        page = make_page('<div class="product-tag-page"></div>')
        assert links.tag_page(ctx, page)
        assert output_lines() == [f"1`***Product Tag Page Empty: {PAGE}"]

    def test_primary_nav_queues_menus(self, ctx, make_page, submitted):
        page = make_page("""<nav class="primary-nav"><ul>
          <li class="primary-nav__item" data-primary-nav-content="42">
            <a class="primary-nav__link"><span class="primary-nav__link-text">Structure</span></a></li>
          <li class="primary-nav__item" data-primary-nav-content="43">
            <a class="primary-nav__link"><span class="primary-nav__link-text">Gift Card</span></a></li>
        </ul></nav>""", url="https://vendor.example/")
        assert not links.primary_nav(ctx, page)
        assert submitted == ["https://vendor.example/menus/42"]
        assert ctx.frontier.breadcrumb_for("https://vendor.example/menus/42") == "Structure"

    def test_menu_page_levels(self, ctx, make_page, submitted):
        ctx.frontier.enqueue("/menus/42", "Structure", "https://vendor.example/")
        page = make_page("""<div class="taxonomy-content-block"><div>
            <span><a href="/channel/">Channel</a></span>
            <ul><li><a href="/channel/low/">Low-Side</a></li></ul>
        </div></div>""", url="https://vendor.example/menus/42")
        assert links.menu_page(ctx, page)
        assert ctx.frontier.breadcrumb_for("https://vendor.example/channel/") == "Structure > Channel"
        assert ctx.frontier.breadcrumb_for("https://vendor.example/channel/low/") == "Structure > Channel > Low-Side"

    def test_menu_page_ignores_other_pages(self, ctx, make_page):
        page = make_page('<div class="taxonomy-content-block"></div>')
        assert not links.menu_page(ctx, page)

    def test_single_mode_never_enqueues(self, ctx, make_page, submitted):
        ctx.single_only = True
        page = make_page('<meta http-equiv="refresh" content="0;url=/moved/">')
        links.meta_refresh(ctx, page)
        assert submitted == []


class TestProductExtractors:
    def test_select_variants_emits_one_record_per_option(self, ctx, make_page, output_lines, fields):
        page = make_page("""<div class="product-details--option_selects">
            <h1 class="product-details__heading">Aluminum Spacer</h1>
            <div class="select-menu"><select>
              <option value="">Choose an option</option>
              <option value="8mm Length (am-1001)">8mm</option>
              <option value="10mm Length (am-1002)">10mm</option>
              <option value="12mm Length (am-1003)">12mm</option>
            </select></div>
        </div>""", breadcrumb="STRUCTURE > Spacers > Aluminum Spacer")
        assert products.select_variants(ctx, page)
        rows = [fields(line) for line in output_lines()]
        assert [r[3] for r in rows] == ["am-1001", "am-1002", "am-1003"]
        assert rows[0][2] == "Aluminum Spacer 8mm Length"
        assert {r[5] for r in rows} == {PAGE}
        assert {r[1] for r in rows} == {"STRUCTURE > Spacers"}

    def test_product_view_radio_variants(self, ctx, make_page, output_lines, fields):
        page = make_page("""<div class="productView">
            <h1 class="productView-title">Smart Robot Servo</h1>
            <div class="productSKU"><span class="productView-info-value">REV-41-1097</span></div>
            <div data-product-option-change="">
              <input type="radio" name="c" value="1" checked>
              <label data-product-attribute-value="1">Black</label>
              <input type="radio" name="c" value="2">
              <label data-product-attribute-value="2">White</label>
            </div>
        </div>""")
        view = partial(
            products.product_view,
            container="div.productView",
            name_selector="h1.productView-title",
            sku_selector="div.productSKU .productView-info-value",
        )
        assert view(ctx, page)
        rows = [fields(line) for line in output_lines()]
        assert [(r[2], r[3]) for r in rows] == [
            ("Smart Robot Servo Black", "REV-41-1097"),
            ("Smart Robot Servo White", "REV-41-????"),
        ]

    def test_product_view_tags_multiple_views(self, ctx, make_page, output_lines, fields):
        view_html = """<div itemtype="http://schema.org/Product">
            <h1 class="productView-title">{name}</h1><span data-product-sku>{sku}</span></div>"""
        page = make_page(view_html.format(name="Hub A", sku="HA-1") + view_html.format(name="Hub B", sku="HB-1"))
        view = partial(
            products.product_view,
            container='div[itemtype="http://schema.org/Product"]',
            name_selector="h1.productView-title",
            sku_selector="[data-product-sku]",
            tag_multiple=True,
        )
        assert view(ctx, page)
        urls = [fields(line)[5] for line in output_lines()]
        assert urls == [f"{PAGE}?sku=HA-1", f"{PAGE}?sku=HB-1"]

    def test_analytics_detail(self, ctx, make_page, output_lines, fields):
        page = make_page("""<div class="product-detail-container"
            data-analytics='{"payload": {"name": "32t Sprocket", "id": 4411}}'></div>""")
        assert products.analytics_detail(ctx, page)
        row = fields(output_lines()[0])
        assert (row[2], row[3]) == ("32t Sprocket", "4411")

    def test_analytics_detail_bad_json(self, ctx, make_page, output_lines):
        page = make_page("""<div class="product-detail-container" data-analytics="{not json"></div>""")
        assert not products.analytics_detail(ctx, page)
        assert output_lines() == []

    def test_variant_list_detail(self, ctx, make_page, output_lines, fields):
        page = make_page("""<div class="product-details-page">
            <div class="product-name">Titan 2 Motor</div>
            <div class="product-variant-list">
              <div class="product-variant-line"><div class="variant-name">Motor</div>
                <div class="manufacturer-part-number"><span class="value">70-1001</span></div></div>
              <div class="product-variant-line"><div class="variant-name">Encoder</div>
                <div class="manufacturer-part-number"><span class="value">70-1002</span></div></div>
            </div></div>""")
        assert products.variant_list_detail(ctx, page)
        names = [fields(line)[2] for line in output_lines()]
        assert names == ["Titan 2 Motor - Motor", "Titan 2 Motor - Encoder"]


class TestJsonVariantMap:
    CONFIG = (
        'var spConfig = new Product.Config({"attributes": {"135": {"id": "135", "code": "color", '
        '"label": "Color", "options": ['
        '{"id": "1", "label": "Black", "products": ["6452"]}, '
        '{"id": "2", "label": "White", "products": ["6453"]}]}, '
        '"136": {"id": "136", "code": "enc", "label": "Encoder", "options": ['
        '{"id": "3", "label": "Yes", "products": ["6452"]}, '
        '{"id": "4", "label": "No", "products": ["6453", "6454"]}]}}, "productId": "6451"});'
    )
    PRODUCT_MAP = 'var productMap = {"6452": "REV-41-1300", "6453": "REV-41-1301", "6454": ""};'

    def test_variants_named_from_attributes(self, ctx, make_page, output_lines, fields):
        page = make_page(f"""<div class="product-name"><h1>HD Hex Motor</h1></div>
            <script>{self.CONFIG}</script><script>{self.PRODUCT_MAP}</script>""")
        assert products.json_variant_map(ctx, page)
        rows = [(fields(line)[2], fields(line)[3]) for line in output_lines()]
        assert rows == [
            ("HD Hex Motor Color Black Encoder", "REV-41-1300"),
            ("HD Hex Motor Color White", "REV-41-1301"),
        ]

    def test_malformed_config_is_not_handled(self, ctx, make_page, output_lines):
        page = make_page(f"<script>new Product.Config({{broken);</script><script>{self.PRODUCT_MAP}</script>")
        assert not products.json_variant_map(ctx, page)
        assert output_lines() == []

    def test_page_without_map(self, ctx, make_page):
        assert not products.json_variant_map(ctx, make_page(f"<script>{self.CONFIG}</script>"))


class TestDispatch:
    def test_first_handler_suppresses_later_strategies(self, ctx, make_page):
        calls = []
        strategies = [
            Strategy("first", lambda c, p: calls.append("first") or True),
            Strategy("second", lambda c, p: calls.append("second") or True),
            Strategy("extra", lambda c, p: calls.append("extra") or False, additive=True),
        ]
        assert dispatch(ctx, make_page("<p></p>"), strategies)
        assert calls == ["first", "extra"]

    def test_unhandled_page_is_reported(self, ctx, make_page, output_lines):
        assert not dispatch(ctx, make_page("<p></p>"), [Strategy("none", lambda c, p: False)])
        assert output_lines() == [f"1`***Unable to process: {PAGE}"]

    @pytest.mark.parametrize("url,redirected", [("https://vendor.example/", False), (PAGE, True)])
    def test_root_and_redirected_pages_are_quiet(self, ctx, make_page, output_lines, url, redirected):
        page = make_page("<p></p>", url=url)
        page.redirected = redirected
        dispatch(ctx, page, [Strategy("none", lambda c, p: False)])
        assert output_lines() == []

    def test_strategy_exception_becomes_error_line(self, ctx, make_page, output_lines):
        def boom(c, p):
            raise ValueError("bad markup")

        assert dispatch(ctx, make_page("<p></p>"), [Strategy("boom", boom)])
        assert output_lines() == [f"1`***Exception processing {PAGE}: bad markup"]

    def test_process_page_dispatches_while_running(self, ctx, output_lines):
        ctx.shutdown = ShutdownHandler()
        assert not process_page(ctx, PAGE, "<p></p>")
        assert output_lines() == [f"1`***Unable to process: {PAGE}"]
        assert ctx.frontier.is_known(PAGE)

    def test_cancelled_crawl_writes_nothing(self, ctx, output_lines):
        ctx.shutdown = ShutdownHandler()
        ctx.shutdown.request_cancel("test")
        assert not process_page(ctx, PAGE, "<p></p>")
        assert output_lines() == []
        assert not ctx.frontier.is_known(PAGE)

"""ServoCity and goBILDA.

Both storefronts run the same platform and share page markup, so they
share one strategy list and differ only in seeds and catalog rules.
"""

from functools import partial

from partspider import link_extractors as links
from partspider import product_extractors as products
from partspider.breadcrumbs import extract_trail
from partspider.dispatcher import Strategy
from partspider.downloads import collect_title_links
from partspider.models import VendorTarget

__all__ = ["SERVOCITY", "GOBILDA", "SECTION_NAME_DELETES", "DOWNLOAD_RENAMES"]

SECTION_NAME_DELETES = [
    "Shop by Electrical Connector Style > ",
    "Shop by Hub Style > ",
    " Aluminum REX Shafting >",
    " Stainless Steel D-Shafting >",
    " > Motor Mounts for AndyMark NeveRest Motors > Motor Mounts for NeveRest Orbital Gear Motors",
    " > Motor Mounts for REV Robotics Motors > Motor Mounts for REV Core Hex Motor",
    " > Motor Mounts for REV Robotics Motors > Motor Mounts for REV UltraPlanetary Gearbox",
]

BELT_SECTION_DELETES = [
    ' > XL Series, 3/8" Width Timing Belts',
    ' > XL Series, 3/8" Width, Cut Length Timing Belts',
]

GOBILDA_ALLOWED_SECTIONS = {
    "1310-0016-4012": "MOTION > Hubs > Hyper Hubs (16mm Pattern)",
    "1311-0016-1006": "MOTION > Hubs > Sonic Hubs > Thru-Hole Sonic Hubs (16mm Pattern)",
    "1309-0016-1006": "MOTION > Hubs > Sonic Hubs > Sonic Hubs (16mm Pattern)",
    "1310-0016-1006": "MOTION > Hubs > Hyper Hubs (16mm Pattern)",
    "1312-0016-1006": "MOTION > Hubs > Sonic Hubs > Double Sonic Hubs (16mm Pattern)",
    "1309-0016-0006": "MOTION > Hubs > Sonic Hubs > Sonic Hubs (16mm Pattern)",
    "1310-0016-0008": "MOTION > Hubs > Hyper Hubs (16mm Pattern)",
    "1310-0016-5008": "MOTION > Hubs > Hyper Hubs (16mm Pattern)",
    "1123-0048-0048": "STRUCTURE > Pattern Plates",
}

SERVOCITY_ALLOWED_SECTIONS = {
    "637213": "KITS > Linear Motion Kits",
    "ASCC8074": "HARDWARE > Lubricants",
    "555192": "STRUCTURE > Motor Mounts > Motor Mounts for NeveRest Classic Gear Motors",
    "555104": "STRUCTURE > Motor Mounts > Motor Mounts for Econ Spur Gear Motors",
    "585074": "STRUCTURE > X-Rail® > X-Rail® Accessories",
    "585073": "STRUCTURE > X-Rail® > X-Rail® Accessories",
    "605638": "STRUCTURE > X-Rail® > X-Rail® Accessories",
}

SECTION_EQUIVALENTS = [
    ("MOTION > Bearings", "MOTION > Linear Bearings"),
    ("KITS > FTC Kits", "KITS > Linear Motion Kits"),
    ("MOTION > Couplers > Shop by Coupler Bore", "MOTION > Couplers > "),
    ("ELECTRONICS > Wiring > Connector Style", "ELECTRONICS > Wiring > "),
    ("MOTION > Hubs > Servo Hubs", "MOTION > Servos & Accessories > Servo Hubs"),
    ("MOTION > Servos & Accessories > Servos", "MOTION > Servos & Accessories"),
    ("STRUCTURE > Adaptors", "MOTION > Hubs"),
    ("STRUCTURE > Brackets", "STRUCTURE > X-Rail® > X-Rail® Accessories"),
]

# Products whose CAD file is still named after the part it replaced
DOWNLOAD_RENAMES = {
    "1600-0722-0008": "535034_3",
    "545361": "545360_1",
    "585756": "585717",
    "585757": "585718",
    "3103-0001-0002": "605632",
    "3103-0001-0001": "605634_1",
    "1804-0032-0001": "svm275-115",
    "638230": "585076",
    "639010": "585399",
    "33488": "HS-488HB",
    "33788": "HS-788HB",
}

STRATEGIES = [
    Strategy("nav_list", links.nav_list),
    Strategy("product_grid", partial(
        links.product_grid,
        containers="ul.productGrid, ul.threeColumnProductGrid, div.productTableWrapper",
        links="li.product a[data-card-type], li.product a.card",
    )),
    Strategy("product_view", partial(
        products.product_view,
        container='div[itemtype="http://schema.org/Product"]',
        name_selector=".productView-header h1.productView-title",
        sku_selector="span.productView-sku[data-product-sku]",
        sku_attr="data-product-sku",
        name_meta=True,
        sku_meta=True,
        tag_multiple=True,
    )),
    Strategy("lazy_load", links.lazy_load, additive=True),
    Strategy("product_table_list", partial(
        links.product_grid,
        containers="table.productTable",
        links="td.productTable-cell a.tableSKU",
        name_attr=None,
    )),
    Strategy("simple_product_table", products.simple_product_table),
    Strategy("meta_refresh", links.meta_refresh),
    Strategy("related_products", partial(
        links.related_products, selector="div.product-related a[data-card-type]",
    ), additive=True),
]

breadcrumb_trail = partial(
    extract_trail,
    items="ul.breadcrumbs li.breadcrumb",
    link="a.breadcrumb-label",
)


def _target(key, seed, presets, spreadsheet_id, outfile, **rules) -> VendorTarget:
    return VendorTarget(
        key=key,
        outfile=outfile,
        spreadsheet_id=spreadsheet_id,
        seed=seed,
        presets=presets,
        download_renames=DOWNLOAD_RENAMES,
        download_collector=collect_title_links,
        strategies=STRATEGIES,
        breadcrumb_extractor=breadcrumb_trail,
        discontinued_selector="p.discontinued",
        **rules,
    )


SERVOCITY = _target(
    "servocity",
    seed="https://www.servocity.com/electronics/",
    presets=[
        f"https://www.servocity.com/{section}/"
        for section in ("structure", "motion", "electronics", "hardware", "kits")
    ],
    spreadsheet_id="15Mm-Thdcpl5fVPs3vnyFUXWthuaV1tacXPJ7xQuoB8A",
    outfile="servocity.txt",
    section_name_deletes=SECTION_NAME_DELETES + BELT_SECTION_DELETES,
    section_allowed_map={**GOBILDA_ALLOWED_SECTIONS, **SERVOCITY_ALLOWED_SECTIONS},
    section_equivalents=SECTION_EQUIVALENTS,
)

GOBILDA = _target(
    "gobilda",
    seed="https://www.gobilda.com/structure/",
    presets=[
        f"https://www.gobilda.com/{section}/"
        for section in ("structure", "motion", "electronics", "hardware", "kits")
    ],
    spreadsheet_id="15XT3v9O0VOmyxqXrgR8tWDyb_CRLQT5-xPfWPdbx4RM",
    outfile="gobilda.txt",
    section_name_deletes=SECTION_NAME_DELETES,
    section_allowed_map=GOBILDA_ALLOWED_SECTIONS,
)

"""REV Robotics."""

from functools import partial

from partspider import link_extractors as links
from partspider import product_extractors as products
from partspider.breadcrumbs import extract_trail
from partspider.dispatcher import Strategy
from partspider.downloads import collect_download_links
from partspider.models import VendorTarget
from partspider.vendors.servocity import (
    BELT_SECTION_DELETES,
    SECTION_EQUIVALENTS,
    SECTION_NAME_DELETES,
    SERVOCITY_ALLOWED_SECTIONS,
)

__all__ = ["REVROBOTICS"]

STRATEGIES = [
    Strategy("nav_list", links.nav_list),
    Strategy("product_grid", partial(
        links.product_grid,
        containers="ul.productGrid",
        links="li.product h4.card-title a",
        name_attr=None,
    )),
    Strategy("product_view", partial(
        products.product_view,
        container="div.productView",
        name_selector="div.productView-product h1.productView-title",
        sku_selector="div.productSKU .productView-info-value",
        trim_category=True,
    )),
    Strategy("quick_add_list", partial(
        links.product_grid,
        containers="ul.qaatc__list",
        links="li.qaatc__item a.qaatc__name",
        name_attr=None,
    )),
    Strategy("simple_product_table", products.simple_product_table),
    Strategy("json_variant_map", products.json_variant_map),
]

REVROBOTICS = VendorTarget(
    key="revrobotics",
    outfile="rev_robotics.txt",
    spreadsheet_id="19Mc9Uj0zoaRr_KmPncf_svNOp9WqIgrzaD7fEiNlBr0",
    seed="https://www.revrobotics.com/ftc/",
    section_name_deletes=SECTION_NAME_DELETES + BELT_SECTION_DELETES,
    section_allowed_map=dict(SERVOCITY_ALLOWED_SECTIONS),
    section_equivalents=SECTION_EQUIVALENTS,
    download_collector=collect_download_links,
    strategies=STRATEGIES,
    breadcrumb_extractor=partial(extract_trail, items="ul.breadcrumbs li", link="a.breadcrumb-label"),
)

"""AndyMark.

Category navigation lives in fly-out menu documents under ``/menus/``
that the top navigation bar references by id.
"""

from functools import partial

from partspider import link_extractors as links
from partspider import product_extractors as products
from partspider.breadcrumbs import extract_trail
from partspider.dispatcher import Strategy
from partspider.downloads import collect_cad_links
from partspider.models import VendorTarget

__all__ = ["ANDYMARK"]

STRATEGIES = [
    Strategy("primary_nav", links.primary_nav, additive=True),
    Strategy("menu_page", links.menu_page),
    Strategy("select_variants", products.select_variants),
    Strategy("product_browse", links.product_browse),
    Strategy("analytics_detail", products.analytics_detail),
    Strategy("category_summaries", links.category_summaries),
    Strategy("meta_refresh", links.meta_refresh),
]

ANDYMARK = VendorTarget(
    key="andymark",
    outfile="andymark.txt",
    spreadsheet_id="1x4SUwNaQ_X687yA6kxPELoe7ZpoCKnnCq1-OsgxUCOw",
    seed="https://www.andymark.com/structure/",
    root_urls=["https://www.andymark.com/"],
    download_collector=collect_cad_links,
    strategies=STRATEGIES,
    breadcrumb_extractor=partial(
        extract_trail,
        items="div.breadcrumbs span.breadcrumbs__node",
        link="a.breadcrumbs__link",
    ),
)

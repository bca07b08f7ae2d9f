"""Studica.

The crawl starts from the XML site map rather than a category page.
Breadcrumb nodes carry no class, so the category name doubles as its tag.
"""

from functools import partial

from partspider import link_extractors as links
from partspider import product_extractors as products
from partspider.breadcrumbs import extract_trail
from partspider.dispatcher import Strategy
from partspider.downloads import collect_cad_links
from partspider.models import VendorTarget

__all__ = ["STUDICA"]

SKIP_PAGES = [
    "https://www.studica.com/blog",
    "https://www.studica.com/search",
    "https://www.studica.com/studica-resources",
    "https://www.studica.com/education-webinars-for-teachers",
    "https://www.studica.com/contactus",
    "https://www.studica.com/industry",
    "https://www.studica.com/manufacturer/all",
    "https://blog.studica.com",
    "https://www.studica.com/webinars",
    "https://www.studica.com/drones-uav",
    "https://www.studica.com/classroom",
    "https://www.studica.com/animation-cad-modeling",
    "https://www.studica.com/career-tech-education",
    "https://www.studica.com/coding-learn-to-program",
    "https://www.studica.com/curriculum-solutions",
    "https://www.studica.com/engineering-education",
    "https://www.studica.com/kitting-services",
    "https://www.studica.com/education-pricing-babbel-for-classroom",
    "https://www.studica.com/science-education",
    "https://www.studica.com/stem-programs",
    "https://www.studica.com/students",
    "https://www.studica.com/student-software-discounts",
    "https://www.studica.com/school-affiliates",
    "https://www.studica.com/architecture",
    "https://www.studica.com/automation-controls",
    "https://www.studica.com/robotics-3",
    "https://www.studica.com/cnc-machines",
    "https://www.studica.com/clearance",
]

STRATEGIES = [
    Strategy("sitemap", links.sitemap),
    Strategy("tag_page", links.tag_page),
    Strategy("select_variants", products.select_variants),
    Strategy("product_browse", links.product_browse),
    Strategy("variant_list_detail", products.variant_list_detail),
    Strategy("category_page", links.category_page),
    Strategy("category_summaries", links.category_summaries),
    Strategy("meta_refresh", links.meta_refresh),
    Strategy("related_products", partial(
        links.related_products, selector="div.related-products-grid a", with_breadcrumb=False,
    ), additive=True),
]

STUDICA = VendorTarget(
    key="studica",
    outfile="studica.txt",
    spreadsheet_id="1xomFgFZ3Ie79XHOMbAX76sSRYDzkkj3VywsakY3DCjA",
    seed="https://www.studica.com/sitemap.xml",
    skip_pages=SKIP_PAGES,
    root_urls=["https://www.studica.com/"],
    root_labels=["Studica Robotics"],
    download_generic_keys=["ONSHAPE MODEL LINK", "STEP FILE"],
    download_collector=partial(collect_cad_links, selector="div.full-description a"),
    strategies=STRATEGIES,
    breadcrumb_extractor=partial(
        extract_trail,
        items='ul[itemtype="http://schema.org/BreadcrumbList"] li[itemprop]',
        link="a[itemprop='item']",
        current="strong[itemprop='name'], span[itemprop='name']",
        class_from_name=True,
    ),
)

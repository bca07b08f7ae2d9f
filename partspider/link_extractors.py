"""Strategies that discover more pages to crawl.

Each function has the strategy signature ``(ctx, page) -> bool`` once its
keyword options are bound with :func:`functools.partial`, so one function
serves every vendor whose markup differs only in selectors.
"""

import json
from typing import Dict, Optional

from bs4 import Tag

from partspider.breadcrumbs import BREADCRUMB_SEPARATOR, make_breadcrumb
from partspider.dispatcher import CrawlContext, Page
from partspider.logging_config import get_logger

__all__ = [
    "sitemap",
    "nav_list",
    "product_grid",
    "related_products",
    "lazy_load",
    "meta_refresh",
    "tag_page",
    "category_page",
    "category_summaries",
    "primary_nav",
    "menu_page",
    "product_browse",
]

logger = get_logger("link_extractors")

MENU_SKIP = frozenset({"New & Deals", "View All", "Gift Card"})
MENU_FIXES: Dict[str, str] = {"Bundles > All Bundles": "Bundles"}


def _text(tag: Optional[Tag]) -> str:
    return tag.get_text().strip() if tag is not None else ""


def _parent_matches(tag: Tag, name: str, css_class: str) -> bool:
    parent = tag.parent
    return parent is not None and parent.name == name and css_class in (parent.get("class") or [])


def sitemap(ctx: CrawlContext, page: Page) -> bool:
    """XML site map: enqueue every ``<url><loc>``. An empty map is still handled."""
    urlset = page.soup.find("urlset")
    if urlset is None:
        return False
    count = 0
    for loc in urlset.select("url loc"):
        if ctx.enqueue(loc.get_text().strip(), ""):
            count += 1
    logger.info(f"Site map {page.url} listed {count} new pages")
    return True


def nav_list(ctx: CrawlContext, page: Page, selector: str = "ul.navList li.navList-item a.navList-action") -> bool:
    """Sub-category navigation list; children inherit the page breadcrumb."""
    found = False
    for link in page.soup.select(selector):
        found = True
        ctx.enqueue(link.get("href", ""), page.breadcrumb, page.url)
    return found


def product_grid(
    ctx: CrawlContext,
    page: Page,
    containers: str,
    links: str,
    name_attr: Optional[str] = "title",
) -> bool:
    """Listing of product cards.

    Each card is enqueued under the page breadcrumb plus the card's name,
    taken from ``name_attr`` or, when that is None, from the link text.
    Grids inside a tab panel are recommendations, not the listing.
    """
    found = False
    for container in page.soup.select(containers):
        if _parent_matches(container, "div", "tab-content"):
            continue
        for link in container.select(links):
            name = link.get(name_attr, "") if name_attr else " ".join(link.get_text().split())
            found = True
            ctx.enqueue(link.get("href", ""), make_breadcrumb(page.breadcrumb, name), page.url)
    return found


def related_products(
    ctx: CrawlContext,
    page: Page,
    selector: str,
    name_attr: Optional[str] = "title",
    with_breadcrumb: bool = True,
) -> bool:
    """Enqueue "related products" links.

    Related links sit beside the real content, so they never count as
    handling the page.
    """
    for link in page.soup.select(selector):
        href = link.get("href")
        if not href:
            continue
        breadcrumb = ""
        if with_breadcrumb:
            breadcrumb = make_breadcrumb(page.breadcrumb, link.get(name_attr, "") if name_attr else "")
        ctx.enqueue(href, breadcrumb, page.url)
    return False


def _subcategory_urls(script: str):
    if script.find("window.stencilBootstrap(") <= 0:
        return
    pos = script.find("subcategories")
    if pos <= 0:
        return
    script = script[pos:]
    start = script.find(":[")
    end = script.find("],")
    if start <= 0 or end <= 0:
        return
    for chunk in script[start + 2:end].replace('\\"', '"').split(","):
        marker = chunk.find('"url":"')
        if marker < 0:
            continue
        url = chunk[marker + 7:]
        quote = url.find('"')
        if quote > 0:
            url = url[:quote]
        yield url.strip('"')


def lazy_load(ctx: CrawlContext, page: Page) -> bool:
    """Sub-category URLs embedded in the storefront bootstrap script."""
    found = False
    for script in page.soup.find_all("script"):
        for url in _subcategory_urls(script.get_text()):
            found = True
            ctx.enqueue(url, page.breadcrumb, page.url)
    return found


def meta_refresh(ctx: CrawlContext, page: Page) -> bool:
    found = False
    for meta in page.soup.select("meta[http-equiv=refresh]"):
        content = meta.get("content", "")
        pos = content.find(";url=")
        if pos >= 0:
            found = True
            ctx.enqueue(content[pos + 5:], page.breadcrumb, page.url)
    return found


def tag_page(ctx: CrawlContext, page: Page, selector: str = "div.product-tag-page") -> bool:
    """A tag page only lists links to products; an empty one is reported."""
    containers = page.soup.select(selector)
    if not containers:
        return False
    links = [a for c in containers for a in c.select(".product-title a") if a.get("href")]
    if not links:
        ctx.emitter.output_error(f"Product Tag Page Empty: {page.url}")
    for link in links:
        ctx.enqueue(link["href"], "", page.url)
    return True


def category_page(ctx: CrawlContext, page: Page) -> bool:
    containers = page.soup.select("div.category-page")
    for container in containers:
        for link in container.select("div.product-item .product-title a"):
            if link.get("href"):
                ctx.enqueue(link["href"], "", page.url)
    return bool(containers)


def category_summaries(ctx: CrawlContext, page: Page) -> bool:
    """Category tiles; each child is labelled with the tile heading."""
    found = False
    for link in page.soup.select("a.category-summary-content-block__content"):
        href = link.get("href")
        if not href:
            continue
        for heading in link.select("span.category-summary-content-block__heading"):
            found = True
            ctx.enqueue(href, make_breadcrumb(page.breadcrumb, heading.get_text().strip()), page.url)
    return found


def primary_nav(ctx: CrawlContext, page: Page, menu_prefix: str = "/menus/") -> bool:
    """Queue the fly-out menu documents behind the top navigation bar.

    The bar is on every page, so this never counts as handling the page.
    """
    for item in page.soup.select("nav.primary-nav li.primary-nav__item"):
        content = item.get("data-primary-nav-content")
        title = _text(item.select_one("a.primary-nav__link span.primary-nav__link-text"))
        if title in MENU_SKIP or not content:
            continue
        ctx.enqueue(menu_prefix + content, title, page.url)
    return False


def menu_page(
    ctx: CrawlContext,
    page: Page,
    marker: str = "/menus/",
    block: str = "div.taxonomy-content-block",
) -> bool:
    """A fly-out menu document: second and third level category links."""
    if marker not in page.url:
        return False
    navtitle = ctx.frontier.breadcrumb_for(page.url) or f"XXX-{page.url}-XXX"

    found = False
    for menu in page.soup.select(block):
        found = True
        for l2 in menu.select("span a"):
            href = l2.get("href")
            if not href:
                continue
            with_children = True
            l2text = l2.get_text().strip()
            if not l2text:
                img = l2.find("img")
                if img is not None and img.get("alt") is not None:
                    with_children = False
                    l2text = img["alt"].strip()
            l2title = f"{navtitle}{BREADCRUMB_SEPARATOR}{l2text}"
            ctx.enqueue(href, l2title, page.url)
            if not with_children:
                continue

            group = l2.parent.parent if l2.parent is not None and l2.parent.parent is not None else None
            if group is None:
                continue
            for l3 in group.select("ul li a"):
                if not l3.get("href"):
                    continue
                l3title = f"{l2title}{BREADCRUMB_SEPARATOR}{l3.get_text().strip()}"
                ctx.enqueue(l3["href"], MENU_FIXES.get(l3title, l3title), page.url)
    return found


def product_browse(ctx: CrawlContext, page: Page) -> bool:
    """Browse listing whose cards carry analytics JSON naming each product."""
    found = False
    for browse in page.soup.select("div.product-browse"):
        ctx.emitter.output_category(page.breadcrumb, True)
        for link in browse.select("div.product-summary a.product-summary__media-link"):
            impression = link.get("data-analytics-product-impression")
            href = link.get("href")
            if impression is None or not href:
                continue
            try:
                keys = json.loads(impression)
                logger.debug(f"Browse: name '{keys.get('name')}' sku '{keys.get('sku')}' url '{href}'")
            except (json.JSONDecodeError, AttributeError) as e:
                logger.warning(f"Bad product impression on {page.url}: {e}")
            ctx.enqueue(href, page.breadcrumb, page.url)
            found = True
    return found

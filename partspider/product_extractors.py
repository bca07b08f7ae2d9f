"""Strategies that emit products.

Like the link extractors these are ``(ctx, page) -> bool`` once their
keyword options are bound. Each one opens a page-local DownloadIndex,
emits its products in document order and resolves every product's model
link against that index.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bs4 import Tag

from partspider.dispatcher import CrawlContext, Page
from partspider.logging_config import get_logger
from partspider.product_table import emit_product_table
from partspider.url_validation import clean_url

__all__ = [
    "VARIANT_OPTION_RE",
    "VariantOption",
    "VariantAttribute",
    "VariantConfig",
    "parse_variant_config",
    "parse_product_map",
    "select_variants",
    "product_view",
    "variant_list_detail",
    "analytics_detail",
    "json_variant_map",
    "simple_product_table",
]

logger = get_logger("product_extractors")

# "Aluminum Spacer 8mm (am-1234)"
VARIANT_OPTION_RE = re.compile(r"^(?P<name>.*) \((?P<sku>[^()]*)\)$")

CONFIG_MARKER = "Product.Config("
PRODUCT_MAP_MARKER = "var productMap = "


def _text(tag: Optional[Tag]) -> str:
    return tag.get_text().strip() if tag is not None else ""


def select_variants(ctx: CrawlContext, page: Page) -> bool:
    """Product page whose drop-down lists every variant as "name (sku)"."""
    found = False
    for container in page.soup.select("div.product-details--option_selects"):
        ctx.emitter.output_category(page.breadcrumb, True)
        base_name = _text(container.select_one("h1.product-details__heading"))
        index = ctx.collect_downloads(container, page.url)
        for option in container.select("div.select-menu select option"):
            match = VARIANT_OPTION_RE.match(option.get("value", ""))
            if match is None:
                continue
            sku = match.group("sku")
            ctx.emitter.output_product(
                f"{base_name} {match.group('name')}",
                sku,
                page.url,
                index.resolve(sku),
                page.discontinued,
            )
            found = True
    return found


def _value(container: Tag, selector: str, attr: Optional[str]) -> Optional[str]:
    """Attribute ``attr`` (or the text, when None) of the first match, or None if absent."""
    tag = container.select_one(selector)
    if tag is None:
        return None
    if attr is None:
        return tag.get_text().strip()
    value = tag.get(attr)
    return value.strip() if value is not None else None


def product_view(
    ctx: CrawlContext,
    page: Page,
    container: str,
    name_selector: str,
    sku_selector: str,
    sku_attr: Optional[str] = None,
    name_meta: bool = False,
    sku_meta: bool = False,
    trim_category: bool = False,
    tag_multiple: bool = False,
) -> bool:
    """Storefront product view, optionally with radio-button variants.

    Args:
        container: Selector for each product view on the page
        name_selector: Product title inside the view
        sku_selector: Element carrying the SKU
        sku_attr: Attribute holding the SKU; None to use the element text
        name_meta: Fall back to ``meta[itemprop=name]`` for the title
        sku_meta: Fall back to ``meta[itemprop=sku]`` for the SKU
        trim_category: Drop the product name from the end of the breadcrumb
        tag_multiple: With several views on one page, give each its own
            ``?sku=`` URL so they stay distinct
    """
    views = page.soup.select(container)
    found = False
    for view in views:
        ctx.emitter.output_category(page.breadcrumb, trim_category)
        name = _value(view, name_selector, None) or ""
        if not name and name_meta:
            name = _value(view, 'meta[itemprop="name"]', "content") or ""
        sku = _value(view, sku_selector, sku_attr)
        if sku is None and sku_meta:
            sku = _value(view, 'meta[itemprop="sku"]', "content")

        index = ctx.collect_downloads(view, page.url)
        if sku:
            found = True
            model_url = index.resolve(sku)
            changeset = view.select_one("[data-product-option-change]")
            if changeset is not None and changeset.find(True) is not None:
                for radio in changeset.find_all("input"):
                    item_sku = sku if radio.has_attr("checked") else sku[:7] + "????"
                    item_name = name
                    value = radio.get("value")
                    if value is not None:
                        label = changeset.select_one(f'[data-product-attribute-value="{value}"]')
                        if label is not None:
                            item_name = f"{name} {label.get_text().strip()}"
                    ctx.emitter.output_product(item_name, item_sku, page.url, model_url, page.discontinued)
            else:
                url = page.url
                if tag_multiple and len(views) > 1:
                    url = f"{clean_url(url)[0]}?sku={sku}"
                ctx.emitter.output_product(name, sku, url, model_url, page.discontinued)
        ctx.finish_downloads(index, page.url)
    return found


def variant_list_detail(ctx: CrawlContext, page: Page) -> bool:
    """Product detail page with an optional list of variant lines."""
    found = False
    for container in page.soup.select("div.product-details-page"):
        ctx.emitter.output_category(page.breadcrumb, True)
        index = ctx.collect_downloads(container, page.url)
        name = _text(container.select_one("div.product-name"))

        variants = container.select("div.product-variant-list div.product-variant-line")
        if variants:
            for variant in variants:
                variant_name = _text(variant.select_one("div.variant-name"))
                sku = _text(variant.select_one("div.manufacturer-part-number span.value"))
                ctx.emitter.output_product(
                    f"{name} - {variant_name}", sku, page.url, index.resolve(sku), page.discontinued
                )
            return True

        for form in container.select("#product-details-form"):
            sku = _text(form.select_one("div.manufacturer-part-number span.value"))
            ctx.emitter.output_product(name, sku, page.url, index.resolve(sku), page.discontinued)
            found = True
    return found


def analytics_detail(ctx: CrawlContext, page: Page) -> bool:
    """Product detail container whose ``data-analytics`` JSON names the product."""
    found = False
    for container in page.soup.select("div.product-detail-container"):
        ctx.emitter.output_category(page.breadcrumb, True)
        index = ctx.collect_downloads(container, page.url)
        data = container.get("data-analytics")
        if data is None:
            continue
        try:
            payload = json.loads(data)["payload"]
            name = str(payload["name"])
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning(f"Unreadable product analytics on {page.url}: {e}")
            continue
        sku = payload.get("sku") or payload.get("id") or ""
        sku = str(sku)
        ctx.emitter.output_product(name, sku, page.url, index.resolve(sku), page.discontinued)
        found = True
    return found


# ----------------------------------------------------------------------
# Configurable-product JSON
# ----------------------------------------------------------------------

@dataclass
class VariantOption:
    id: str = ""
    label: str = ""
    products: List[str] = field(default_factory=list)


@dataclass
class VariantAttribute:
    id: str = ""
    code: str = ""
    label: str = ""
    options: List[VariantOption] = field(default_factory=list)


@dataclass
class VariantConfig:
    attributes: List[VariantAttribute] = field(default_factory=list)
    product_id: str = ""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "VariantConfig":
        attributes = []
        for attr in (data.get("attributes") or {}).values():
            options = [
                VariantOption(
                    id=str(opt.get("id", "")),
                    label=str(opt.get("label", "")),
                    products=[str(p) for p in opt.get("products") or []],
                )
                for opt in attr.get("options") or []
            ]
            attributes.append(VariantAttribute(
                id=str(attr.get("id", "")),
                code=str(attr.get("code", "")),
                label=str(attr.get("label", "")),
                options=options,
            ))
        return cls(attributes=attributes, product_id=str(data.get("productId", "")))

    def labels(self) -> Dict[str, str]:
        """Product id -> variant label, in the order products first appear.

        A "Yes" option contributes the attribute label, a "No" option
        contributes nothing, anything else contributes "attribute option".
        """
        labels: Dict[str, str] = {}
        for attr in self.attributes:
            for option in attr.options:
                if option.label == "Yes":
                    part = attr.label
                elif option.label == "No":
                    part = ""
                else:
                    part = f"{attr.label} {option.label}"
                for pid in option.products:
                    labels[pid] = " ".join(p for p in (labels.get(pid, ""), part) if p)
        return labels


def _extract_between(script: str, marker: str, terminator: str, keep: int = 0) -> Optional[str]:
    pos = script.find(marker)
    if pos < 0:
        return None
    end = script.find(terminator, pos)
    if end < 0:
        return None
    return script[pos + len(marker):end + keep]


def parse_variant_config(script: str) -> Optional[VariantConfig]:
    """Decode the ``Product.Config({...});`` block of a script, if any.

    Raises:
        json.JSONDecodeError: If the block is present but malformed
    """
    text = _extract_between(script, CONFIG_MARKER, ");")
    if text is None:
        return None
    return VariantConfig.from_json(json.loads(text))


def parse_product_map(script: str) -> Optional[Dict[str, str]]:
    """Decode ``var productMap = {"6452":"92029A140"};`` (product id -> SKU)."""
    text = _extract_between(script, PRODUCT_MAP_MARKER, "};", keep=1)
    if text is None:
        return None
    return {str(k): str(v) for k, v in json.loads(text).items()}


def json_variant_map(ctx: CrawlContext, page: Page) -> bool:
    """Configurable product described by embedded JavaScript."""
    labels: Dict[str, str] = {}
    product_map: Dict[str, str] = {}
    try:
        for script in page.soup.find_all("script"):
            text = script.get_text()
            config = parse_variant_config(text)
            if config is not None:
                labels.update(config.labels())
                continue
            found_map = parse_product_map(text)
            if found_map is not None:
                product_map.update(found_map)
    except (json.JSONDecodeError, AttributeError) as e:
        logger.warning(f"Unreadable product configuration on {page.url}: {e}")
        return False

    if not product_map:
        return False

    product_name = _text(page.soup.select_one("div.product-name h1"))
    index = ctx.collect_downloads(page.soup, page.url)
    found = False
    for pid in list(labels) + [p for p in product_map if p not in labels]:
        sku = product_map.get(pid)
        if not sku:
            logger.debug(f"Variant {pid} on {page.url} has no SKU")
            continue
        ctx.emitter.output_product(
            f"{product_name} {labels.get(pid, '')}".strip(),
            sku,
            page.url,
            index.resolve(sku),
            page.discontinued,
        )
        found = True
    return found


def simple_product_table(ctx: CrawlContext, page: Page) -> bool:
    """Category page whose description holds a product table."""
    title = page.soup.select_one("div.page-title h1")
    tables = page.soup.select("div.category-description div.table-widget-container table")
    if title is None or not tables:
        return False

    index = ctx.collect_downloads(page.soup, page.url)
    ctx.emitter.output_category(page.breadcrumb, False)
    found = False
    for table in tables:
        if emit_product_table(ctx.emitter, index, title.get_text().strip(), page.url, table):
            found = True
    if found:
        ctx.finish_downloads(index, page.url)
    return found

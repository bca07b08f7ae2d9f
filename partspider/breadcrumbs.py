"""Breadcrumb composition and category tracking."""

from typing import TYPE_CHECKING, Dict, List, Optional

from bs4 import BeautifulSoup

from partspider.logging_config import get_logger
from partspider.models import BreadcrumbItem, Category, VendorTarget

if TYPE_CHECKING:
    from partspider.frontier import Frontier

__all__ = [
    "BREADCRUMB_SEPARATOR",
    "make_breadcrumb",
    "trim_last",
    "CategoryTracker",
    "extract_trail",
    "page_breadcrumb",
]

logger = get_logger("breadcrumbs")

BREADCRUMB_SEPARATOR = " > "
NBSP = "\u00a0"

# A trail ending under this prefix tells us nothing about where the part lives
UNINFORMATIVE_TRAIL = "home > shop all"


def make_breadcrumb(base: str, add: str) -> str:
    """Append one name to a breadcrumb path."""
    if not add:
        return base
    add = add.replace(NBSP, " ")
    if not base:
        return add
    return f"{base}{BREADCRUMB_SEPARATOR}{add}"


def trim_last(breadcrumb: str) -> str:
    """Drop the final component of a breadcrumb path."""
    head, sep, _tail = breadcrumb.rpartition(BREADCRUMB_SEPARATOR)
    return head if sep else breadcrumb


class CategoryTracker:
    """Categories observed in breadcrumbs, keyed by their opaque class tag."""

    def __init__(self) -> None:
        self._categories: Dict[str, Category] = {}

    def __len__(self) -> int:
        return len(self._categories)

    def get(self, class_tag: str) -> Optional[Category]:
        return self._categories.get(class_tag)

    def save(self, name: str, class_tag: str, url: str = "") -> Category:
        entry = self._categories.get(class_tag)
        if entry is None:
            entry = Category(name=name, class_tag=class_tag, url=url)
            self._categories[class_tag] = entry
            return entry

        if entry.name != name:
            logger.warning(f"Category {class_tag}: name '{name}' did not match previous name '{entry.name}'")
        if entry.url != url:
            if not entry.url:
                entry.url = url
            elif url:
                logger.warning(f"Category {name}: url {url} did not match previous url {entry.url}")
        return entry


def _node_text(node) -> str:
    return node.get_text().replace(NBSP, " ").strip()


def extract_trail(
    soup: BeautifulSoup,
    items: str,
    link: str,
    current: str = "strong",
    class_from_name: bool = False,
) -> List[BreadcrumbItem]:
    """Read an on-page breadcrumb trail.

    Args:
        soup: Parsed page
        items: Selector for each trail node (e.g. ``ul.breadcrumbs li.breadcrumb``)
        link: Selector, inside a node, for the ancestor link
        current: Selector, inside a node, for the non-linked current item
        class_from_name: Use the node name as its class tag instead of the
            node's ``class`` attribute
    """
    trail: List[BreadcrumbItem] = []
    for node in soup.select(items):
        name = ""
        url = ""
        anchor = node.select_one(link)
        if anchor is not None:
            name = _node_text(anchor)
            url = anchor.get("href", "")
        else:
            strong = node.select_one(current)
            if strong is not None:
                name = _node_text(strong)

        if class_from_name:
            class_tag: Optional[str] = name
        else:
            classes = node.get("class")
            class_tag = " ".join(classes) if classes else None
        trail.append(BreadcrumbItem(name=name, class_tag=class_tag, url=url))
    return trail


def page_breadcrumb(
    target: VendorTarget,
    soup: BeautifulSoup,
    page_url: str,
    frontier: "Frontier",
    categories: CategoryTracker,
) -> str:
    """Compose the section path of a page.

    Falls back to the breadcrumb the page was discovered under when the
    on-page trail is missing or collapses to the generic shop root.
    """
    result = ""
    previous = ""
    if target.breadcrumb_extractor is not None:
        for item in target.breadcrumb_extractor(soup):
            if item.class_tag is None:
                logger.warning(f"No Class for name: {item.name} url: {item.url}")
            categories.save(item.name, item.class_tag or item.name, item.url)
            if item.name in target.root_labels:
                continue
            previous = result
            result = make_breadcrumb(result, item.name)

    if previous.lower() == UNINFORMATIVE_TRAIL or not result:
        saved = frontier.breadcrumb_for(page_url)
        if saved is not None:
            return saved
    return result

"""Per-page index of CAD/model download links.

A page lists some downloads; each product emitted from that page claims
one of them by SKU. Whatever is left over afterwards is reported, except
for informational documents (manuals, spec sheets and the like).
"""

import re
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from bs4 import Tag

from partspider.config import NOMODEL_TEMPLATE
from partspider.logging_config import get_logger
from partspider.models import DownloadEntry

if TYPE_CHECKING:
    from partspider.emitter import Emitter

__all__ = [
    "FLAVOR_PRIORITY",
    "UNUSED_DENYLIST",
    "DownloadIndex",
    "normalize_title",
    "cad_title_key",
    "collect_title_links",
    "collect_download_links",
    "collect_cad_links",
]

logger = get_logger("downloads")

# When one SKU has several kinds of link, the earlier flavor wins
FLAVOR_PRIORITY = ("ONSHAPE", "STEP", "DRAWING")

# Titles of downloads that are never models, so never worth reporting
UNUSED_DENYLIST = (
    "Instructions",
    "Spec Sheet",
    "Specs",
    "Guide",
    "Diagram",
    "Charts",
    "Manual",
    "Pattern Information",
    "Use Parameter",
    ".pdf",
    ".docx",
    ".exe",
    "arduino",
    "oboclaw_",
    "RoboclawClassLib",
    "USBRoboclawVirtualComport",
    "bldc_hsr_",
    "595644_assembly",
    "Hardware Accessory Pack",
)

TITLE_NOISE = (" STEP", " File", " file", " assembly", ".zip")
CAD_EXTENSIONS = (".STEP", ".STEP.ZIP", ".STP", ".STL", ".SLDDRW")
GENERIC_TITLES = ("STEP FILE", "ONSHAPE MODEL LINK")
PACK_SKU_RE = re.compile(r"-PK\d+$", re.IGNORECASE)
CAD_KEY_RE = re.compile(r"[ .].*$")


def normalize_title(title: str) -> str:
    """Strip the decorations vendors add to download titles."""
    for noise in TITLE_NOISE:
        title = title.replace(noise, "")
    return title.strip()


def cad_title_key(title: str) -> Optional[str]:
    """Key for a link whose text is a CAD file name, or None if it is not one.

    ``am-3284 32t Ninja Star Sprocket.STEP`` becomes ``am-3284``. The two
    generic titles used for single-product pages are kept whole.
    """
    upper = title.upper()
    if upper in GENERIC_TITLES:
        return upper
    if upper.endswith(CAD_EXTENSIONS):
        return CAD_KEY_RE.sub("", title)
    return None


def cad_flavor(title: str) -> Optional[str]:
    upper = title.upper()
    if upper.endswith((".STEP", ".STEP.ZIP", ".STP")):
        return "STEP"
    if upper.endswith(".SLDDRW"):
        return "DRAWING"
    return None


def _base_key(key: str) -> str:
    for flavor in FLAVOR_PRIORITY:
        prefix = f"{flavor}:"
        if key.startswith(prefix):
            return key[len(prefix):]
    return key


class DownloadIndex:
    """Download links found on one page, keyed by normalized title.

    Args:
        renames: SKU -> download key for products whose file is named after
            an older part number
        generic_keys: Keys that match any SKU (single-product pages whose
            link just says "STEP File")
    """

    def __init__(
        self,
        renames: Optional[Dict[str, str]] = None,
        generic_keys: Iterable[str] = (),
    ) -> None:
        self.entries: Dict[str, DownloadEntry] = {}
        self.renames = renames or {}
        self.generic_keys = tuple(generic_keys)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def add(self, key: str, url: str, flavor: Optional[str] = None) -> None:
        full_key = f"{flavor}:{key}" if flavor else key
        self.entries[full_key] = DownloadEntry(url=url)

    def _find(self, key: str) -> Optional[str]:
        """Best entry key stored for ``key`` under any flavor."""
        for flavor in FLAVOR_PRIORITY:
            flavored = f"{flavor}:{key}"
            if flavored in self.entries:
                return flavored
        if key in self.entries:
            return key
        return None

    def _claim(self, entry_key: str) -> str:
        base = _base_key(entry_key)
        for flavor in FLAVOR_PRIORITY:
            flavored = self.entries.get(f"{flavor}:{base}")
            if flavored is not None:
                flavored.used = True
        if base in self.entries:
            self.entries[base].used = True
        entry = self.entries[entry_key]
        entry.used = True
        return entry.url

    def _find_unused_url_containing(self, fragment: str, lower: bool = False) -> Optional[str]:
        for key, entry in self.entries.items():
            url = entry.url.lower() if lower else entry.url
            if not entry.used and fragment in url:
                return key
        return None

    def resolve(self, sku: str) -> str:
        """Pick the download for ``sku`` and mark it used.

        Returns:
            The download URL, or a ``<NOMODEL:sku>`` placeholder
        """
        placeholder = NOMODEL_TEMPLATE.format(sku=sku)
        if not sku:
            return placeholder

        for key in (sku, sku.lower(), PACK_SKU_RE.sub("", sku)):
            found = self._find(key)
            if found is not None:
                return self._claim(found)

        for key in self.generic_keys:
            found = self._find(key)
            if found is not None:
                return self._claim(found)

        found = self._find_unused_url_containing(sku)
        if found is not None:
            return self._claim(found)

        renamed = self.renames.get(sku)
        if renamed:
            found = self._find(renamed)
            if found is not None:
                return self._claim(found)

        prefix = sku.lower().split("-")[0]
        if prefix:
            found = self._find_unused_url_containing(prefix, lower=True)
            if found is not None:
                return self._claim(found)

        logger.debug(f"No download for {sku}")
        return placeholder

    def unused(self) -> List[Tuple[str, DownloadEntry]]:
        """Unclaimed entries that are not informational documents."""
        return [
            (key, entry)
            for key, entry in self.entries.items()
            if not entry.used and not any(word in key for word in UNUSED_DENYLIST)
        ]

    def report_unused(self, emitter: "Emitter", page_url: str) -> int:
        leftovers = self.unused()
        for key, entry in leftovers:
            emitter.output_error(f"Unused download '{key}': {entry.url} on {page_url}")
        return len(leftovers)


# ----------------------------------------------------------------------
# Collectors: fill a DownloadIndex from the part of a page around a product
# ----------------------------------------------------------------------

def _search_root(root: Tag) -> Tag:
    return root.parent if root.parent is not None else root


def _report_missing(emitter: "Emitter", title: str, href: Optional[str], page_url: str) -> None:
    if not title:
        emitter.output_error(f"No Title found for url {href} on {page_url}")
    else:
        emitter.output_error(f"No URL found associated with {title} on {page_url}")


def collect_title_links(
    index: DownloadIndex,
    root: Tag,
    page_url: str,
    emitter: "Emitter",
    selector: str = "a.product-downloadsList-listItem-link",
) -> DownloadIndex:
    """Links whose ``title`` attribute names the file (``1309-0016-2005.zip``)."""
    for link in _search_root(root).select(selector):
        title = link.get("title", "")
        href = link.get("href")
        if not title or not href:
            _report_missing(emitter, title, href, page_url)
            continue
        flavor = "ONSHAPE" if "onshape" in href.lower() else None
        index.add(normalize_title(title), href, flavor)
    return index


def collect_download_links(
    index: DownloadIndex,
    root: Tag,
    page_url: str,
    emitter: "Emitter",
    selector: str = "a[download]",
) -> DownloadIndex:
    """Anchors carrying a ``download`` attribute, keyed by their text."""
    for link in _search_root(root).select(selector):
        title = link.get_text().strip()
        href = link.get("href")
        if not title or not href:
            _report_missing(emitter, title, href, page_url)
            continue
        index.add(normalize_title(title), href)
    return index


def collect_cad_links(
    index: DownloadIndex,
    root: Tag,
    page_url: str,
    emitter: "Emitter",
    selector: str = "a.product-documents__link",
) -> DownloadIndex:
    """Anchors whose text is a CAD file name; everything else is ignored."""
    for link in _search_root(root).select(selector):
        title = link.get_text().strip()
        href = link.get("href")
        if not title or not href:
            _report_missing(emitter, title, href, page_url)
            continue
        key = cad_title_key(title)
        if key is None:
            continue
        index.add(key, href, cad_flavor(title))
    return index

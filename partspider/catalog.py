"""Reference catalog: the curated table of expected parts.

The catalog is read from a sheet whose first row holds column headers.
Columns are discovered by header text, so the sheet may carry extra
columns in any order.
"""

import csv
import io
import os
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import requests  # type: ignore[import-untyped]

from partspider.config import CATALOG_SHEET_NAME, REQUEST_TIMEOUT, SPREADSHEET_EXPORT_URL
from partspider.logging_config import get_logger, log_spider_event
from partspider.models import EXTRA_SLOTS, PartData, SpiderStatus
from partspider.url_validation import sanitize_url

__all__ = [
    "CatalogError",
    "ReferenceCatalog",
    "exclude_from_match",
    "load_catalog_rows",
    "load_catalog_csv",
    "fetch_spreadsheet_rows",
    "load_catalog",
]

logger = get_logger("catalog")

ExcludeFilter = Callable[[PartData], bool]

# Header text -> attribute. "Extra 1" claims the next six columns too.
HEADER_COLUMNS: Dict[str, str] = {
    "Order": "order",
    "Section": "section",
    "Name": "name",
    "Part #": "sku",
    "URL": "url",
    "Model URL": "model_url",
    "Onshape URL": "onshape_url",
    "Extra 1": "extra",
    "Status": "status",
    "Model Status": "status",
    "Notes": "notes",
}


class CatalogError(Exception):
    """Raised when the reference catalog cannot be read."""
    pass


def exclude_from_match(part: PartData) -> bool:
    """Rows that are kept for output but never matched against the site.

    Section separators ("--" names) and placeholder SKUs for configurable
    or unidentified parts.
    """
    return (
        part.name.startswith("--")
        or part.sku.startswith("(Configurable)")
        or part.sku.startswith("(??")
    )


class ReferenceCatalog:
    """Parts keyed by SKU and by URL, plus the ordered list of all rows."""

    def __init__(self) -> None:
        self.parts: List[PartData] = []
        self.by_sku: Dict[str, PartData] = {}
        self.by_url: Dict[str, PartData] = {}
        self.excluded: List[PartData] = []

    def __len__(self) -> int:
        return len(self.parts)

    def add_part(self, part: PartData, exclude_filter: Optional[ExcludeFilter] = None) -> None:
        self.parts.append(part)

        if exclude_filter is not None and exclude_filter(part):
            self.excluded.append(part)
            return

        duplicate = self.by_sku.get(part.sku)
        if duplicate is not None:
            logger.warning(
                f"row {len(self.parts)}: duplicate part number '{part.sku}' "
                f"found (original order {duplicate.order})"
            )
        else:
            self.by_sku[part.sku] = part
        if part.url:
            self.by_url[part.url] = part

    def find_by_sku(self, sku: str) -> Optional[PartData]:
        return self.by_sku.get(sku)

    def find_by_url(self, url: str) -> Optional[PartData]:
        return self.by_url.get(url)

    def unseen(self) -> List[PartData]:
        """All rows, in catalog order, that the crawl never matched."""
        return [p for p in self.parts if p.spider_status is SpiderStatus.NOT_FOUND_BY_SPIDER]

    def unseen_urls(self) -> List[PartData]:
        """Matchable rows with a URL that the crawl has not matched yet."""
        return [
            p for p in self.by_sku.values()
            if p.url and p.spider_status is SpiderStatus.NOT_FOUND_BY_SPIDER
        ]


def _column_indexes(header: Sequence[str]) -> Dict[str, int]:
    indexes: Dict[str, int] = {}
    for i, name in enumerate(header):
        attr = HEADER_COLUMNS.get(str(name).strip())
        if attr is not None:
            indexes[attr] = i
    return indexes


def _parse_order(value: str) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        return 1


def _row_to_part(row: Sequence[str], indexes: Dict[str, int]) -> PartData:
    def cell(attr: str, offset: int = 0) -> str:
        idx = indexes.get(attr)
        if idx is None or idx + offset >= len(row):
            return ""
        value = row[idx + offset]
        return "" if value is None else str(value)

    part = PartData(
        order=_parse_order(cell("order")) if "order" in indexes else 0,
        section=cell("section"),
        name=cell("name"),
        sku=cell("sku"),
        url=sanitize_url(cell("url")),
        model_url=cell("model_url"),
        onshape_url=cell("onshape_url"),
        status=cell("status"),
        notes=cell("notes"),
        spider_status=SpiderStatus.NOT_FOUND_BY_SPIDER,
    )
    if "extra" in indexes:
        part.set_extras([cell("extra", i) for i in range(EXTRA_SLOTS)])
    return part


def load_catalog_rows(
    rows: Iterable[Sequence[str]],
    exclude_filter: Optional[ExcludeFilter] = exclude_from_match,
) -> ReferenceCatalog:
    """Build a ReferenceCatalog from tabular rows (header row first).

    Raises:
        CatalogError: If there are no rows at all
    """
    catalog = ReferenceCatalog()
    indexes: Optional[Dict[str, int]] = None

    for row in rows:
        if indexes is None:
            indexes = _column_indexes(row)
            if "sku" not in indexes:
                logger.warning("Catalog header has no 'Part #' column")
            continue
        if not any(str(c).strip() for c in row if c is not None):
            continue
        catalog.add_part(_row_to_part(row, indexes), exclude_filter)

    if indexes is None:
        raise CatalogError("No data in catalog")

    log_spider_event("catalog_loaded", {
        "message": f"Loaded {len(catalog)} catalog rows ({len(catalog.excluded)} excluded)",
        "rows": len(catalog),
        "matchable": len(catalog.by_sku),
        "excluded": len(catalog.excluded),
    })
    return catalog


def load_catalog_csv(path: str, exclude_filter: Optional[ExcludeFilter] = exclude_from_match) -> ReferenceCatalog:
    """Load the catalog from a local CSV (or TSV) export of the sheet."""
    if not os.path.exists(path):
        raise CatalogError(f"Catalog file not found: {path}")

    try:
        with open(path, "r", newline="", encoding="utf-8-sig") as f:
            sample = f.read(4096)
            f.seek(0)
            dialect = csv.excel_tab if sample.count("\t") > sample.count(",") else csv.excel
            rows = list(csv.reader(f, dialect))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise CatalogError(f"Unable to read catalog file {path}: {e}") from e

    logger.info(f"Read {len(rows)} rows from {path}")
    return load_catalog_rows(rows, exclude_filter)


def fetch_spreadsheet_rows(
    spreadsheet_id: str,
    sheet: str = CATALOG_SHEET_NAME,
    session: Optional[requests.Session] = None,
) -> List[List[str]]:
    """Download one sheet of the reference spreadsheet as CSV rows.

    Raises:
        CatalogError: If the sheet cannot be fetched
    """
    url = SPREADSHEET_EXPORT_URL.format(spreadsheet_id=spreadsheet_id, sheet=sheet)
    sess = session or requests.Session()
    try:
        resp = sess.get(url, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise CatalogError(
            f"Unable to find '{sheet}' sheet in spreadsheet {spreadsheet_id}: {e}"
        ) from e

    resp.encoding = resp.encoding or "utf-8"
    return list(csv.reader(io.StringIO(resp.text)))


def load_catalog(
    spreadsheet_id: Optional[str] = None,
    path: Optional[str] = None,
    skip: bool = False,
    session: Optional[requests.Session] = None,
) -> ReferenceCatalog:
    """Load the reference catalog from whichever source was configured.

    A local file wins over the spreadsheet id. With ``skip`` (or no source
    at all) an empty catalog is returned, so every product will be New.
    """
    if skip:
        logger.info("Skipping catalog load, every product will be reported as New")
        return ReferenceCatalog()
    if path:
        return load_catalog_csv(path)
    if not spreadsheet_id:
        logger.warning("No spreadsheet id was given, so no catalog was loaded")
        return ReferenceCatalog()

    logger.info(f"Loading catalog from spreadsheet {spreadsheet_id}")
    return load_catalog_rows(fetch_spreadsheet_rows(spreadsheet_id, session=session))

"""Recognizer for product tables whose columns are named by header text.

A row becomes one product: the SKU column supplies the part number,
descriptive columns are folded into the product name, and anything
unrecognized is carried as a ``header:value`` extra field.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from bs4 import Tag

from partspider.logging_config import get_logger

if TYPE_CHECKING:
    from partspider.downloads import DownloadIndex
    from partspider.emitter import Emitter

__all__ = [
    "ColumnAction",
    "HEADER_ACTIONS",
    "TableColumn",
    "TableRow",
    "classify_columns",
    "parse_product_table",
    "emit_product_table",
]

logger = get_logger("product_table")


class ColumnAction(Enum):
    SKU = "sku"
    SKIP = "skip"
    KEEP_NAME = "keep_name"
    KEEP_NAME_AFTER = "keep_name_after"
    KEEP_NAME_BEFORE = "keep_name_before"
    KEEP_BORE = "keep_bore"
    KEEP_TO = "keep_to"
    OUTPUT = "output"


# Exact, case-sensitive header text. Anything else is OUTPUT.
HEADER_ACTIONS: Dict[str, ColumnAction] = {
    "Part #": ColumnAction.SKU,
    "Part Number": ColumnAction.SKU,
    "SKU": ColumnAction.SKU,
    "Meta Title": ColumnAction.SKU,
    "Wishlist": ColumnAction.SKIP,
    "Price": ColumnAction.SKIP,
    "Purchase": ColumnAction.SKIP,
    "Length": ColumnAction.KEEP_NAME,
    "Bore": ColumnAction.KEEP_NAME,
    "A": ColumnAction.KEEP_BORE,
    "Tooth": ColumnAction.KEEP_NAME_AFTER,
    "Spline Size": ColumnAction.KEEP_NAME,
    "Thread Size": ColumnAction.KEEP_NAME,
    "Screw Size": ColumnAction.KEEP_NAME,
    "Thread": ColumnAction.KEEP_NAME,
    "Servo Spline": ColumnAction.KEEP_NAME,
    "Thickness": ColumnAction.KEEP_NAME,
    "Bore A": ColumnAction.KEEP_TO,
    "Bore B": ColumnAction.KEEP_NAME,
    "Hex Size": ColumnAction.KEEP_NAME,
    "# of teeth": ColumnAction.KEEP_NAME,
}


@dataclass
class TableColumn:
    name: str
    action: ColumnAction


@dataclass
class TableRow:
    """One product read from a table row."""

    sku: str = ""
    name_parts: List[str] = field(default_factory=list)
    extras: List[str] = field(default_factory=list)

    def name(self, product_name: str) -> str:
        return " ".join([product_name] + self.name_parts)


def _header_text(cell: Tag) -> str:
    for selector in ("p", "strong"):
        inner = cell.find(selector)
        if inner is not None:
            return inner.get_text().strip()
    return cell.get_text().strip()


def _cell_text(cell: Tag) -> str:
    inner = cell.find("p")
    if inner is not None:
        return inner.get_text().strip()
    return cell.get_text().strip()


def classify_columns(headers: List[str]) -> List[TableColumn]:
    """Map header text to column actions.

    A lone "A" column is the bore; when a real "Bore" column came first the
    "A" column repeats it and is skipped.
    """
    columns = []
    found_bore = False
    for name in headers:
        action = HEADER_ACTIONS.get(name, ColumnAction.OUTPUT)
        if name == "Bore":
            found_bore = True
        elif action is ColumnAction.KEEP_BORE and found_bore:
            action = ColumnAction.SKIP
        columns.append(TableColumn(name, action))
    return columns


def parse_product_table(table: Tag) -> Optional[List[TableRow]]:
    """Read every product row of ``table``.

    Returns:
        The rows in table order, or None if no column holds a part number
    """
    header_cells = table.select("thead tr th")
    header_row = None
    if not header_cells:
        header_row = table.find("tr")
        header_cells = header_row.find_all("td") if header_row is not None else []
        logger.debug(f"No <th> headers, using first row ({len(header_cells)} cells)")

    columns = classify_columns([_header_text(c) for c in header_cells])
    if not any(c.action is ColumnAction.SKU for c in columns):
        return None

    body_rows = table.select("tbody tr") or table.find_all("tr")
    rows: List[TableRow] = []
    for tr in body_rows:
        cells = tr.find_all("td")
        if tr is header_row or not cells:
            continue
        row = TableRow()
        for column, td in zip(columns, cells):
            value = _cell_text(td)
            action = column.action
            if action is ColumnAction.SKU:
                row.sku = value
            elif action is ColumnAction.KEEP_NAME:
                row.name_parts.append(value)
            elif action is ColumnAction.KEEP_NAME_BEFORE:
                row.name_parts.append(f"{column.name} {value}")
            elif action is ColumnAction.KEEP_NAME_AFTER:
                row.name_parts.append(f"{value} {column.name}")
            elif action is ColumnAction.KEEP_BORE:
                row.name_parts.append(f"{value} Bore")
            elif action is ColumnAction.KEEP_TO:
                row.name_parts.append(f"{value} To")
            elif action is ColumnAction.OUTPUT:
                row.extras.append(f"{column.name}:{value}")
        rows.append(row)
    return rows


def emit_product_table(
    emitter: "Emitter",
    index: "DownloadIndex",
    product_name: str,
    page_url: str,
    table: Tag,
) -> bool:
    """Emit one product per row. Returns False if the table was not recognized."""
    rows = parse_product_table(table)
    if rows is None:
        return False
    for row in rows:
        emitter.output_product(
            row.name(product_name),
            row.sku,
            page_url,
            index.resolve(row.sku),
            extras=row.extras,
        )
    return True

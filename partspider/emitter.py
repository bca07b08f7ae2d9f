"""Output file writer.

Writes the backtick-separated product file: one header line, one line per
reconciled product, inline error lines, and a terminal pass for catalog
parts the crawl never reached.
"""

from collections import Counter
from typing import Dict, List, Optional, TextIO

from partspider.breadcrumbs import trim_last
from partspider.catalog import ReferenceCatalog
from partspider.config import ERROR_MARKER, FIELD_SEPARATOR
from partspider.logging_config import get_logger, log_spider_event
from partspider.models import EXTRA_SLOTS, PartData, SpiderStatus
from partspider.reconcile import Reconciler

__all__ = ["OUTPUT_COLUMNS", "Emitter"]

logger = get_logger("emitter")

OUTPUT_COLUMNS: List[str] = (
    ["Order", "Section", "Name", "Part #", "Combined Name", "URL", "Model URL"]
    + [f"Extra {i + 1}" for i in range(EXTRA_SLOTS)]
    + ["Onshape URL", "Model Status", "Spider Status", "Notes"]
)


def _field(value) -> str:
    return str(value).replace("\r", " ").replace("\n", " ").replace(FIELD_SEPARATOR, "'")


class Emitter:
    """Appends records to the output stream.

    Not thread-safe on its own; callers hold the crawl lock.

    Args:
        stream: Open text stream for the output file
        reconciler: Matches products against the reference catalog
    """

    def __init__(self, stream: TextIO, reconciler: Reconciler) -> None:
        self.stream = stream
        self.reconciler = reconciler
        self.line = 1
        self.last_category = ""
        self.counts: Counter = Counter()
        self.errors = 0

    def _write(self, fields: List[str]) -> None:
        self.stream.write(FIELD_SEPARATOR.join(_field(f) for f in fields) + "\n")

    def write_header(self) -> None:
        self._write(OUTPUT_COLUMNS)

    def output_category(self, breadcrumb: str, trim: bool = False) -> str:
        """Set the section used for the products that follow."""
        category = trim_last(breadcrumb) if trim else breadcrumb
        if category != self.last_category:
            logger.info(f"CATEGORY: {category}")
            self.last_category = category
        return category

    def output_product(
        self,
        name: str,
        sku: str,
        url: str,
        model_url: str,
        discontinued: bool = False,
        extras: Optional[List[str]] = None,
    ) -> Optional[PartData]:
        """Reconcile one extracted product and write it.

        Returns:
            The written record, or None if it duplicated an emitted catalog part
        """
        part = PartData(
            order=self.line,
            section=self.last_category,
            name=name,
            sku=sku,
            url=url,
            model_url=model_url,
        )
        part.set_extras(extras)

        # Dropped duplicates keep their order index for the next record
        if not self.reconciler.reconcile(part):
            return None
        self.line += 1

        if discontinued:
            part.spider_status = SpiderStatus.DISCONTINUED
            entry = self.reconciler.catalog.find_by_sku(part.sku)
            if entry is not None:
                entry.spider_status = SpiderStatus.DISCONTINUED

        self.output_part(part)
        return part

    def output_part(self, part: PartData) -> None:
        logger.debug(part.describe())
        self.counts[part.spider_status] += 1
        self._write(
            [
                str(part.order),
                part.section,
                part.name,
                part.sku,
                part.combined_name,
                part.url,
                part.model_url,
            ]
            + list(part.extra)
            + [part.onshape_url, part.status, str(part.spider_status), part.notes]
        )

    def output_error(self, message: str) -> None:
        logger.warning(f"{ERROR_MARKER}{message}")
        self.stream.write(f"{self.line}{FIELD_SEPARATOR}{ERROR_MARKER}{_field(message)}\n")
        self.line += 1
        self.errors += 1

    def emit_unseen(self, catalog: ReferenceCatalog) -> int:
        """Write every catalog part the crawl never matched, as stored."""
        unseen = catalog.unseen()
        for part in unseen:
            self.output_part(part)
        logger.info(f"Wrote {len(unseen)} parts not found by the spider")
        return len(unseen)

    def summary(self) -> Dict[str, int]:
        counts = {str(status): self.counts.get(status, 0) for status in SpiderStatus}
        log_spider_event("crawl_summary", {
            "message": ", ".join(f"{k}: {v}" for k, v in counts.items()) + f", Errors: {self.errors}",
            "errors": self.errors,
            **counts,
        })
        return counts

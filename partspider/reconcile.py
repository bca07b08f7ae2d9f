"""Reconciliation of extracted products against the reference catalog.

A matched product keeps the curated values from the catalog wherever the
site only differs cosmetically; real drift marks it Changed and records
what the site now says in the notes.
"""

import re
from typing import Dict, Iterable, List, Optional, Tuple

from partspider.breadcrumbs import NBSP
from partspider.catalog import ReferenceCatalog
from partspider.config import NOT_DONE_STATUS
from partspider.logging_config import get_logger
from partspider.models import PartData, SpiderStatus, VendorTarget
from partspider.url_validation import clean_url

__all__ = [
    "NOTE_SEPARATOR",
    "PACK_SUFFIX_RE",
    "Reconciler",
    "normalize_new_name",
    "normalize_old_name",
]

logger = get_logger("reconcile")

NOTE_SEPARATOR = ", "

# "Bronze Bushing (8 Pack)", "Shaft Collar - 2 Pack"
PACK_SUFFIX_RE = re.compile(r"[\- \(]*[0-9]+ [pP]ack *\)*")

# Markers curators put in stored names that the site never shows
STORED_NAME_MARKERS = ("(Pair)", "[DISCONTINUED]", "[OBSOLETE]")


def normalize_new_name(name: str) -> str:
    name = name.replace(NBSP, " ").replace("  ", " ")
    return PACK_SUFFIX_RE.sub("", name).strip()


def normalize_old_name(name: str) -> str:
    name = name.replace("  ", " ")
    for marker in STORED_NAME_MARKERS:
        name = name.replace(marker, "")
    return name.strip()


class _Notes:
    """Accumulates note fragments joined with ", "."""

    def __init__(self, *initial: str) -> None:
        self.parts: List[str] = [n for n in initial if n]

    def add(self, note: str) -> None:
        self.parts.append(note)

    def __str__(self) -> str:
        return NOTE_SEPARATOR.join(self.parts)


class Reconciler:
    """Matches products against one vendor's reference catalog.

    Args:
        catalog: Reference catalog; its spider statuses are updated in place
        section_name_deletes: Substrings removed from a site section before comparing
        section_allowed_map: SKU -> section the curators deliberately chose
        section_equivalents: Pairs of section prefixes considered the same place
    """

    def __init__(
        self,
        catalog: ReferenceCatalog,
        section_name_deletes: Iterable[str] = (),
        section_allowed_map: Optional[Dict[str, str]] = None,
        section_equivalents: Iterable[Tuple[str, str]] = (),
    ) -> None:
        self.catalog = catalog
        self.section_name_deletes = list(section_name_deletes)
        self.section_allowed_map = section_allowed_map or {}
        self.section_equivalents = [(a.upper(), b.upper()) for a, b in section_equivalents]

    @classmethod
    def for_target(cls, catalog: ReferenceCatalog, target: VendorTarget) -> "Reconciler":
        return cls(
            catalog,
            section_name_deletes=target.section_name_deletes,
            section_allowed_map=target.section_allowed_map,
            section_equivalents=target.section_equivalents,
        )

    def find_entry(self, part: PartData) -> Tuple[Optional[PartData], bool]:
        """Locate the catalog row for ``part``.

        Returns:
            Tuple of (entry or None, whether the entry was already emitted)
        """
        entry = self.catalog.find_by_sku(part.sku)
        if entry is not None:
            return entry, entry.spider_status is not SpiderStatus.NOT_FOUND_BY_SPIDER
        entry = self.catalog.find_by_url(part.url)
        if entry is not None and entry.spider_status is SpiderStatus.NOT_FOUND_BY_SPIDER:
            return entry, False
        return None, False

    def reconcile(self, part: PartData) -> bool:
        """Fill in ``part``'s spider status and notes from the catalog.

        Returns:
            False if the part matches a catalog row that was already
            emitted, in which case it must not be written again
        """
        entry, already_emitted = self.find_entry(part)
        if already_emitted:
            logger.info(f"Skipping duplicate of {entry.sku} found on {part.url}")
            return False

        if entry is None:
            part.spider_status = SpiderStatus.NEW
            part.status = NOT_DONE_STATUS
            return True

        notes = _Notes(part.notes, entry.notes)
        part.spider_status = SpiderStatus.UNCHANGED

        self._reconcile_section(part, entry, notes)
        self._reconcile_name(part, entry, notes)

        if part.sku.lower() != entry.sku.lower():
            part.spider_status = SpiderStatus.CHANGED
            notes.add(f" Old SKU:{entry.sku}")

        self._reconcile_url(part, entry, notes)

        if part.model_url.lower() != entry.model_url.lower():
            if "NOMODEL" in part.model_url.upper():
                part.model_url = entry.model_url

        if not part.onshape_url:
            part.onshape_url = entry.onshape_url
        if not part.status:
            part.status = entry.status

        part.notes = str(notes)
        entry.spider_status = part.spider_status
        return True

    # ------------------------------------------------------------------
    # Field rules
    # ------------------------------------------------------------------

    def normalize_section(self, section: str) -> str:
        section = section.replace(NBSP, " ")
        for delete in self.section_name_deletes:
            section = section.replace(delete, "")
        return section.strip()

    def _equivalent(self, new: str, old: str) -> bool:
        new, old = new.upper(), old.upper()
        for first, second in self.section_equivalents:
            if new.startswith(first) and old.startswith(second):
                return True
            if new.startswith(second) and old.startswith(first):
                return True
        return False

    def _reconcile_section(self, part: PartData, entry: PartData, notes: _Notes) -> None:
        if not part.section or part.section.lower() == entry.section.lower():
            part.section = entry.section
            return

        new = self.normalize_section(part.section)
        old = entry.section.replace(NBSP, " ")

        if len(old) > len(new) and old[:len(new)].lower() == new.lower():
            new = old
        elif self._equivalent(new, old):
            new = old

        allowed = self.section_allowed_map.get(entry.sku)
        if new.lower() == old.lower() or (allowed is not None and allowed.lower() == old.lower()):
            part.section = entry.section
            return

        part.spider_status = SpiderStatus.CHANGED
        notes.add(f"New Section:{new}")
        part.section = entry.section

    def _reconcile_name(self, part: PartData, entry: PartData, notes: _Notes) -> None:
        if part.name.lower() == entry.name.lower():
            return

        new = normalize_new_name(part.name)
        old = normalize_old_name(entry.name)
        if new.lower() == old.lower():
            part.name = new
            return

        part.spider_status = SpiderStatus.CHANGED
        notes.add(f"New Name:{new}")
        part.name = old

    def _reconcile_url(self, part: PartData, entry: PartData, notes: _Notes) -> None:
        if part.url.lower() == entry.url.lower():
            return

        preferred = part.url
        new, stripped_new = clean_url(part.url)
        old, stripped_old = clean_url(entry.url)
        if not stripped_new and stripped_old:
            preferred = entry.url

        if new.lower() == old.lower():
            part.url = preferred
            return

        part.spider_status = SpiderStatus.CHANGED
        notes.add(f" Old URL:{entry.url}")

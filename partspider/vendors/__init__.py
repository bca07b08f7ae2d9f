"""Vendor rule sets, selected at startup by key."""

from typing import Dict, List

from partspider.models import VendorTarget
from partspider.vendors.andymark import ANDYMARK
from partspider.vendors.revrobotics import REVROBOTICS
from partspider.vendors.servocity import GOBILDA, SERVOCITY
from partspider.vendors.studica import STUDICA

__all__ = ["ConfigurationError", "VENDOR_TARGETS", "get_target", "target_keys"]


class ConfigurationError(Exception):
    """Raised for startup problems: unknown vendor, unwritable output and the like."""
    pass


VENDOR_TARGETS: Dict[str, VendorTarget] = {
    target.key: target
    for target in (SERVOCITY, GOBILDA, REVROBOTICS, STUDICA, ANDYMARK)
}


def target_keys() -> List[str]:
    return sorted(VENDOR_TARGETS)


def get_target(key: str) -> VendorTarget:
    """Look up a vendor by key (case-insensitive).

    Raises:
        ConfigurationError: If no vendor has that key
    """
    target = VENDOR_TARGETS.get(key.strip().lower())
    if target is None:
        raise ConfigurationError(
            f"Unknown target '{key}'. Choose one of: {', '.join(target_keys())}"
        )
    return target

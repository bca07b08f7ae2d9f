"""Robotics parts catalog spider package."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from partspider.catalog import CatalogError, ReferenceCatalog, load_catalog
from partspider.models import PartData, SpiderStatus, VendorTarget
from partspider.reconcile import Reconciler
from partspider.vendors import VENDOR_TARGETS, ConfigurationError, get_target
from partspider.workflows import CrawlOptions, crawl_vendor

__all__ = [
    # Version
    "__version__",
    # Models
    "PartData",
    "SpiderStatus",
    "VendorTarget",
    # Catalog
    "CatalogError",
    "ReferenceCatalog",
    "load_catalog",
    "Reconciler",
    # Vendors
    "VENDOR_TARGETS",
    "ConfigurationError",
    "get_target",
    # Workflow
    "CrawlOptions",
    "crawl_vendor",
]

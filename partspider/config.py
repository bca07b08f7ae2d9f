"""Configuration and constants for the parts spider."""

import os
from pathlib import Path
from typing import FrozenSet

from dotenv import find_dotenv, load_dotenv

# Read .env from the working directory before any os.getenv below
load_dotenv(find_dotenv(usecwd=True))

__all__ = [
    "HEADERS",
    "REQUEST_TIMEOUT",
    "REQUEST_DELAY",
    "DEFAULT_WORKERS",
    "WORKER_IDLE_TTL",
    "ACCEPTED_CONTENT_TYPES",
    "SPREADSHEET_EXPORT_URL",
    "CATALOG_SHEET_NAME",
    "CATALOG_PATH",
    "OUTPUT_DIR",
    "LOG_DIR",
    "FIELD_SEPARATOR",
    "ERROR_MARKER",
    "NOMODEL_TEMPLATE",
    "NOT_DONE_STATUS",
]

_PROJECT_ROOT = Path(__file__).parent.parent

# HTTP headers: one User-Agent identifying the crawler
HEADERS = {
    "User-Agent": "partspider/0.1 (catalog reconciliation crawler)",
}

# Request timeout (seconds)
REQUEST_TIMEOUT = 15

# Per-host spacing between requests (seconds). Vendor sites accept the
# traffic, so politeness is off unless asked for.
REQUEST_DELAY = float(os.getenv("PARTSPIDER_REQUEST_DELAY", "0"))

# Worker pool
DEFAULT_WORKERS = int(os.getenv("PARTSPIDER_WORKERS", "8"))
WORKER_IDLE_TTL = 5.0  # seconds without a completed page before warning

# Only these responses are parsed and dispatched
ACCEPTED_CONTENT_TYPES: FrozenSet[str] = frozenset({
    "text/html",
    "application/xml",
    "text/xml",
})

# Reference catalog source
SPREADSHEET_EXPORT_URL = (
    "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/gviz/tq?tqx=out:csv&sheet={sheet}"
)
CATALOG_SHEET_NAME = "All"
CATALOG_PATH = os.getenv("PARTSPIDER_CATALOG")

# Output paths
OUTPUT_DIR = os.getenv("PARTSPIDER_OUTPUT_DIR", ".")
LOG_DIR = Path(os.getenv("PARTSPIDER_LOG_DIR", str(_PROJECT_ROOT / "logs")))

# Output file format. Backtick because vendor names contain tabs and commas.
FIELD_SEPARATOR = "`"
ERROR_MARKER = "***"
NOMODEL_TEMPLATE = "<NOMODEL:{sku}>"

# Workflow status given to parts the catalog has never seen
NOT_DONE_STATUS = "Not Done"

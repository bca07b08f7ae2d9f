"""URL validation, sanitization and canonicalization.

Canonical form: the URL resolved against the page it was found on, stripped
of whitespace, control characters and fragment, and optionally stripped of
its whole query string. Equality between URLs is byte-exact on this form.
"""

import re
from typing import Tuple
from urllib.parse import urldefrag, urljoin, urlparse

__all__ = [
    "URLValidationError",
    "sanitize_url",
    "validate_seed_url",
    "canonicalize_url",
    "clean_url",
    "host_of",
    "same_host",
    "is_crawlable",
]


class URLValidationError(Exception):
    """Raised when a URL cannot be used by the crawler."""
    pass


# Schemes we never follow
DANGEROUS_SCHEMES = {"javascript", "data", "vbscript", "file", "mailto", "tel"}


def sanitize_url(url: str) -> str:
    """Strip whitespace and control characters from a raw URL."""
    if not url:
        return ""
    return re.sub(r"[\x00-\x1f\x7f-\x9f]", "", url).strip()


def validate_seed_url(url: str) -> str:
    """Validate a seed URL given on the command line or by a vendor target.

    Raises:
        URLValidationError: If the URL is empty, not http(s) or has no host
    """
    url = sanitize_url(url)
    if not url:
        raise URLValidationError("Seed URL is empty")

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme not in ("http", "https"):
        raise URLValidationError(f"Seed URL must be http or https, got: {url!r}")
    if not parsed.netloc:
        raise URLValidationError(f"Seed URL has no host: {url!r}")
    return url


def clean_url(url: str) -> Tuple[str, bool]:
    """Remove any query from a URL.

    Returns:
        Tuple of (url without query, whether a query was removed). A URL
        that starts with '?' is left alone so the result is never empty.
    """
    pos = url.find("?")
    if pos > 0:
        return url[:pos], True
    return url, False


def canonicalize_url(href: str, base_url: str = "", strip_query: bool = False) -> str:
    """Produce the canonical form of ``href`` as found on ``base_url``.

    Idempotent: ``canonicalize_url(canonicalize_url(u)) == canonicalize_url(u)``.
    """
    href = sanitize_url(href)
    if base_url:
        href = urljoin(base_url, href)
    href, _fragment = urldefrag(href)
    if strip_query:
        href = href.partition("?")[0]
    else:
        # urldefrag drops one empty query, so a run of "?" needs a full strip
        href = href.rstrip("?")
    return href


def host_of(url: str) -> str:
    """Lower-cased host (without port) of a URL."""
    return urlparse(url).netloc.lower().split(":")[0]


def same_host(url: str, host: str) -> bool:
    return bool(host) and host_of(url) == host.lower()


def is_crawlable(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme in DANGEROUS_SCHEMES:
        return False
    return scheme in ("http", "https") and bool(parsed.netloc)

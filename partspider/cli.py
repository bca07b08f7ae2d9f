"""Command-line interface for the parts spider."""

import argparse
import logging
import re
import sys
from typing import List, Optional

__all__ = ["main", "parse_args", "parse_duration"]

from partspider.catalog import CatalogError
from partspider.config import CATALOG_PATH, DEFAULT_WORKERS
from partspider.logging_config import get_logger, setup_logging
from partspider.shutdown import ShutdownHandler
from partspider.url_validation import URLValidationError
from partspider.vendors import VENDOR_TARGETS, ConfigurationError, get_target, target_keys
from partspider.workflows import CrawlOptions, crawl_vendor

logger = get_logger("cli")

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|h|m|s)")

_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str) -> float:
    """Parse "90", "90s", "5m", "1h30m" or "250ms" into seconds.

    Raises:
        argparse.ArgumentTypeError: If the string is not a positive duration
    """
    text = value.strip().lower()
    try:
        seconds = float(text)
    except ValueError:
        seconds = 0.0
        pos = 0
        for match in _DURATION_PART_RE.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
            pos = match.end()
        if pos != len(text) or not text:
            raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"duration must be positive: {value!r}")
    return seconds


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="partspider",
        description="Crawl a robotics vendor catalog and reconcile it against the reference parts sheet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full crawl of goBILDA, writing gobilda.txt
  partspider --target gobilda

  # Check a single product page without following links
  partspider --target revrobotics --single --seed https://www.revrobotics.com/rev-41-1562/

  # Crawl ServoCity against a local copy of the sheet, stopping after 10 minutes
  partspider --target servocity --catalog servocity.csv --stopafter 10m

  # Everything reported as New, with memory reports every 30 seconds
  partspider --target studica --skipcatalog --memstats 30s

  # List available vendors
  partspider --list-targets
        """,
    )

    # Target selection
    parser.add_argument(
        "--target",
        default="gobilda",
        help=f"Vendor to crawl (default: gobilda). Choices: {', '.join(target_keys())}",
    )
    parser.add_argument("--seed", metavar="URL", help="Start from this URL instead of the vendor seed")
    parser.add_argument("--out", metavar="PATH", help="Output file (default: the vendor's file name)")
    parser.add_argument(
        "--list-targets",
        action="store_true",
        help="List available vendors and exit",
    )

    # Reference catalog
    parser.add_argument("--spreadsheet", metavar="ID", help="Reference spreadsheet id (default: the vendor's)")
    parser.add_argument(
        "--catalog",
        metavar="PATH",
        default=CATALOG_PATH,
        help="Read the reference catalog from a local CSV export instead of the spreadsheet",
    )
    parser.add_argument(
        "--skipcatalog",
        action="store_true",
        help="Don't load the reference catalog (every product is reported as New)",
    )

    # Crawl behavior
    parser.add_argument(
        "--single",
        action="store_true",
        help="Process only the seed page; follow no links",
    )
    parser.add_argument(
        "--stripsku",
        action="store_true",
        help="Strip the query string from every URL",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Parallel fetch workers (default: {DEFAULT_WORKERS})",
    )

    # Termination
    parser.add_argument("--stopafter", type=parse_duration, metavar="DUR",
                        help="Stop scheduling new pages after this long (e.g. 90s, 5m, 1h30m)")
    parser.add_argument("--cancelafter", type=parse_duration, metavar="DUR",
                        help="Abandon the crawl after this long")
    parser.add_argument("--stopat", metavar="URL", help="Stop scheduling new pages once this URL is reached")
    parser.add_argument("--cancelat", metavar="URL", help="Abandon the crawl once this URL is reached")

    # Diagnostics
    parser.add_argument("--memstats", type=parse_duration, metavar="DUR",
                        help="Log memory statistics at this interval")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to the console")
    parser.add_argument("--no-log-file", action="store_true", help="Don't write the JSONL log file")

    return parser.parse_args(argv)


def list_targets() -> None:
    print("Available targets:")
    for key in target_keys():
        target = VENDOR_TARGETS[key]
        print(f"  {key}: {target.seed} -> {target.outfile}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)

    if args.list_targets:
        list_targets()
        return 0

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_to_file=not args.no_log_file,
    )

    shutdown = ShutdownHandler().install()
    try:
        target = get_target(args.target)
        if args.stopafter:
            shutdown.stop_after(args.stopafter)
        if args.cancelafter:
            shutdown.cancel_after(args.cancelafter)

        options = CrawlOptions(
            seed=args.seed,
            outfile=args.out,
            spreadsheet_id=args.spreadsheet,
            catalog_path=args.catalog,
            single=args.single,
            strip_sku=args.stripsku,
            skip_catalog=args.skipcatalog,
            stop_at=args.stopat,
            cancel_at=args.cancelat,
            memstats_interval=args.memstats,
            workers=args.workers,
        )
        result = crawl_vendor(target, options, shutdown)
    except (URLValidationError, CatalogError, ConfigurationError) as e:
        logger.error(str(e))
        return 1
    finally:
        shutdown.cleanup()

    print(f"\nOutput written to: {result.outfile}")
    print(", ".join(f"{status}: {count}" for status, count in result.counts.items()))
    if result.stats.cancelled:
        print("Crawl was cancelled before it finished")
    elif result.stats.stopped:
        print("Crawl was stopped before it finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())

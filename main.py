"""Job Search Assistant — CLI entry point.

Runs a one-off multi-source job search (or a single description fetch),
prints the JSON result to stdout, and exits with a POSIX code. ``--serve``
starts the HTTP API instead.

No scraping logic lives here. This module is intentionally thin.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# MODULE-LEVEL SETUP  (runs at import time)
# ---------------------------------------------------------------------------

# override=False so values already in the process environment win.
load_dotenv(override=False)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger: logging.Logger = logging.getLogger("main")

# Deferred imports, placed here so env is loaded first.
from config.settings import ai_config, scraper_config  # noqa: E402
from core.models import JobSource, SearchRequest  # noqa: E402
from scrapers.scraper_engine import ScraperEngine  # noqa: E402
from scrapers.scraper_service import fetch_full_text  # noqa: E402

__all__ = ["main"]


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse and return CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Job Search Assistant — scrape Seek, LinkedIn and Indeed"
    )
    parser.add_argument("--keywords", "-k", help="Search keywords (required for a search)")
    parser.add_argument("--location", "-l", default=None, help="Optional location filter")
    parser.add_argument(
        "--sources",
        nargs="+",
        choices=[s.value for s in JobSource] + ["all"],
        default=["all"],
        help="Sources to search (default: all)",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=scraper_config.default_max_results,
        help="Maximum records per source (default: %(default)s)",
    )
    parser.add_argument(
        "--fetch-description",
        metavar="URL",
        help="Fetch the full text of a single job posting and exit",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start the HTTP API instead of running a search",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the requested command.

    Returns:
        ``0`` on success, ``1`` on failure, ``2`` for invalid arguments,
        ``130`` on :exc:`KeyboardInterrupt`.
    """
    args = parse_args(argv)

    if args.serve:
        from api.api_server import main as serve  # inline import

        serve()
        return 0

    try:
        if args.fetch_description:
            text = asyncio.run(fetch_full_text(args.fetch_description))
            print(json.dumps({"url": args.fetch_description, "text": text}, indent=2))
            return 0

        try:
            request = SearchRequest.from_dict(
                {
                    "keywords": args.keywords,
                    "location": args.location,
                    "sources": args.sources,
                    "maxResults": args.max_results,
                }
            )
        except ValueError as exc:
            print(f"❌ INVALID REQUEST: {exc}", file=sys.stderr)
            return 2

        logger.info(
            "Search: %r in %s | sources=%s | ai_enabled=%s",
            request.keywords,
            request.location or "any location",
            [s.value for s in request.sources],
            ai_config.enable_ai_features,
        )
        engine = ScraperEngine()
        jobs = engine.search_all_sync(request)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user (KeyboardInterrupt)")
        return 130
    except Exception as exc:
        logger.critical("Unhandled exception in main(): %s", exc, exc_info=True)
        return 1

    print(
        json.dumps(
            {
                "count": len(jobs),
                "jobs": [job.to_dict() for job in jobs],
                "metrics": engine.last_metrics.to_dict(),
            },
            indent=2,
        )
    )
    return 0


# ---------------------------------------------------------------------------
# ENTRY POINT
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())

"""Manual scraper runner.

Runs one, several or all marketplace adapters and prints the session (or
single-source result) as JSON on stdout. Logs go to stderr.

Usage:
    python scripts/run_scraper.py --list
    python scripts/run_scraper.py --all
    python scripts/run_scraper.py --source bizbuysell --max-pages 2
    python scripts/run_scraper.py --source flippa --source acquire --no-save
    python scripts/run_scraper.py --schedule
"""

import argparse
import asyncio
import json
import logging
import os
import sys

import structlog

# Add backend to path so we can import bizscout modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from bizscout.config import settings
from bizscout.core.exceptions import BizScoutException, ConfigError, NotFoundError
from bizscout.scrapers.factory import AdapterFactory
from bizscout.scrapers.register_adapters import register_all_adapters
from bizscout.scrapers.scheduler import ScrapingScheduler
from bizscout.scrapers.scraper_service import ScrapingService
from bizscout.scrapers.sites import SITE_CONFIGS


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose or settings.DEBUG else logging.INFO
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def list_sources() -> None:
    print(f"\n{'='*60}")
    print("  Available sources")
    print(f"{'='*60}")
    for slug, site in sorted(SITE_CONFIGS.items()):
        flags = " (FBA only)" if site.fba_only else ""
        print(f"  {slug:<18} {site.name}{flags}")
        for seed in site.seed_urls:
            print(f"  {'':<18}   {seed}")
    print()


def build_overrides(args: argparse.Namespace) -> dict:
    return {
        "max_pages": args.max_pages,
        "delay_between_requests": args.delay,
    }


async def build_listing_service(save: bool):
    if not save:
        return None

    from bizscout.db.session import async_session_factory, create_tables
    from bizscout.services.listing_service import ListingService

    await create_tables()
    return ListingService(async_session_factory)


def build_service(factory: AdapterFactory, sources, listing_service) -> ScrapingService:
    unknown = [s for s in sources or [] if not factory.has_adapter(s)]
    if unknown:
        raise NotFoundError("Scraper", ", ".join(unknown))

    adapters = factory.create_adapters(sources or settings.get_enabled_sources() or None)
    return ScrapingService(adapters=adapters, listing_service=listing_service)


async def run(args: argparse.Namespace) -> int:
    factory = register_all_adapters(AdapterFactory())
    listing_service = await build_listing_service(save=not args.no_save)
    service = build_service(factory, args.source, listing_service)
    overrides = build_overrides(args)

    if args.source and len(args.source) == 1 and not args.all:
        result = await service.scrape_source(args.source[0], overrides)
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return 0 if result.success else 1

    session = await service.scrape_all(overrides)
    print(json.dumps(session.to_dict(), indent=2, default=str))
    return 0 if session.status == "completed" else 1


async def run_scheduler(args: argparse.Namespace) -> int:
    factory = register_all_adapters(AdapterFactory())
    listing_service = await build_listing_service(save=not args.no_save)

    scheduler = ScrapingScheduler(
        service_factory=lambda: build_service(factory, args.source, listing_service),
    )
    scheduler.update_config(enabled=True)
    scheduler.start()
    try:
        # Runs until interrupted
        await asyncio.Event().wait()
    finally:
        scheduler.stop()
    return 0


def main() -> int:
    """Parse arguments and run the scraper."""
    parser = argparse.ArgumentParser(
        description="Scrape business-for-sale marketplaces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_scraper.py --all
  python scripts/run_scraper.py --source bizbuysell --max-pages 2
  python scripts/run_scraper.py --source flippa --source acquire --no-save
        """,
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--all", action="store_true", help="Scrape every registered source")
    target.add_argument(
        "--source",
        action="append",
        help="Source slug to scrape (repeatable, e.g. 'bizbuysell')",
    )
    parser.add_argument("--max-pages", type=int, help="Pages per seed URL (default from settings)")
    parser.add_argument("--delay", type=float, help="Seconds between page requests")
    parser.add_argument("--no-save", action="store_true", help="Do not write listings to the database")
    parser.add_argument("--list", action="store_true", help="List available sources and exit")
    parser.add_argument("--schedule", action="store_true", help="Run the cron scheduler in the foreground")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    if args.list:
        list_sources()
        return 0

    configure_logging(args.verbose)

    try:
        if args.schedule:
            return asyncio.run(run_scheduler(args))
        return asyncio.run(run(args))
    except ConfigError as e:
        print(f"\n❌ Configuration error: {e.message}", file=sys.stderr)
        print("   Set SCRAPER_API_KEY in the environment or .env file.", file=sys.stderr)
        return 2
    except BizScoutException as e:
        print(f"\n❌ Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())

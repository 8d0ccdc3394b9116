"""Run the normalization and change-detection pipeline from the command line.

With --input, raw products are read from a JSON file in the same shape as
the ingest endpoint's "products" list. This is the working mode until brand
scrapers are registered with the scraper factory; without --input, every
registered scraper (or only the one for --brand) is executed, and brands
with no scraper are skipped.

Usage:
    python scripts/run_scraper.py --brand=Philips --input philips_products.json
    python scripts/run_scraper.py --brand="Acuity Brands"
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List

from pydantic import TypeAdapter, ValidationError

from brightchoice.config import settings
from brightchoice.core.exceptions import StorageError
from brightchoice.core.logging_config import configure_logging
from brightchoice.db.session import async_session_factory, engine
from brightchoice.db.utils import create_tables
from brightchoice.schemas.ingest import IngestProductItem
from brightchoice.scrapers.base import RawProduct
from brightchoice.scrapers.scraper_service import ScraperService, ScrapeStats
from brightchoice.services.spec_store import SQLAlchemySpecStore

_products_adapter = TypeAdapter(List[IngestProductItem])


def load_raw_products(path: Path) -> List[RawProduct]:
    """Read and validate a JSON list of raw products.

    Raises:
        ValueError: If the file is not valid JSON or an item is malformed
    """
    try:
        items = _products_adapter.validate_python(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ValueError(f"Invalid product file {path}: {e}") from e
    return [item.to_raw_product() for item in items]


async def run_pipeline(brand: str = None, input_path: Path = None) -> ScrapeStats:
    """Run one pipeline pass and return its statistics."""
    try:
        await create_tables(engine)

        async with async_session_factory() as session:
            store = SQLAlchemySpecStore(session)
            service = ScraperService(store)

            if input_path is None:
                return await service.run(brand)

            brands = await store.list_active_brands(brand)
            if not brands:
                raise ValueError(f"Brand not found or inactive: {brand}")

            return await service.process_brand(brands[0], raw_products=load_raw_products(input_path))
    finally:
        await engine.dispose()


def _print_summary(stats: ScrapeStats) -> None:
    print(f"\n{'='*50}")
    print("  Run Summary")
    print(f"{'='*50}")
    print(f"  Products found:    {stats.found}")
    print(f"  New region rows:   {stats.new}")
    print(f"  Changed rows:      {stats.changed}")
    print(f"  Errors:            {stats.errors}")
    print(f"{'='*50}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run brand scrapes through normalization and change detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_scraper.py --brand=Philips --input philips_products.json
  python scripts/run_scraper.py --brand="Acuity Brands"

--input is the working mode: no brand scrapers ship with this package, so
a run without it only processes brands whose scraper has been registered
with the scraper factory. Brands without one are skipped.
        """,
    )

    parser.add_argument(
        "--brand",
        help="Only process this brand (name as stored in the brands table)",
    )

    parser.add_argument(
        "--input",
        type=Path,
        help="JSON file of raw products to process instead of scraping (requires --brand)",
    )

    return parser


def main(argv: List[str] = None) -> int:
    """Parse arguments and run the pipeline."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.input and not args.brand:
        parser.error("--input requires --brand")

    configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)

    try:
        stats = asyncio.run(run_pipeline(args.brand, args.input))
    except (ValueError, StorageError) as e:
        print(f"\n❌ {e}\n", file=sys.stderr)
        return 1

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    sys.exit(main())

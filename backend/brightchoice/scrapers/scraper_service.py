"""Scrape run orchestration.

Connects brand scrapers with the normalization pipeline and the spec store.
Each raw product flows all the way through before the next one starts:

    map attributes -> build normalized product -> validate
        -> expand to regions -> per region: detect change or insert

A failure inside one product is logged and counted; the run goes on with
the next product.
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from brightchoice.core.exceptions import ScraperError, StorageError
from brightchoice.detector.change_detector import ChangeDetector
from brightchoice.detector.hash_engine import build_spec_snapshot, generate_spec_hash
from brightchoice.geo.geo_resolver import resolve_geo_variants
from brightchoice.normalizer.attribute_map import map_attributes
from brightchoice.normalizer.product_builder import build_normalized_product
from brightchoice.normalizer.validator import validate_product
from brightchoice.scrapers.base import BrandConfig, RawProduct
from brightchoice.scrapers.factory import ScraperFactory, get_scraper_factory
from brightchoice.services.spec_store import SpecStore

logger = structlog.get_logger(__name__)


@dataclass
class ScrapeStats:
    """Counts reported for a brand run (or summed over several).

    new and changed count region rows; found and errors count raw products,
    except that a storage failure on a single region row is also an error.
    """

    found: int = 0
    new: int = 0
    changed: int = 0
    errors: int = 0

    def add(self, other: "ScrapeStats") -> None:
        self.found += other.found
        self.new += other.new
        self.changed += other.changed
        self.errors += other.errors

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _audit_payload(raw_payload: str) -> Dict[str, Any]:
    """Split a raw payload into the content type and JSON/text columns."""
    stripped = raw_payload.lstrip()
    if stripped.startswith(("{", "[")):
        try:
            return {"content_type": "application/json", "raw_json": json.loads(stripped)}
        except json.JSONDecodeError:
            pass
    return {"content_type": "text/html", "raw_text": raw_payload}


class ScraperService:
    """Runs brand scrapes through normalization and change detection."""

    def __init__(
        self,
        store: SpecStore,
        detector: Optional[ChangeDetector] = None,
        factory: Optional[ScraperFactory] = None,
    ):
        """Initialize scraper service.

        Args:
            store: Spec store for all reads and writes
            detector: Change detector (built on the same store by default)
            factory: Brand scraper registry (the global one by default)
        """
        self.store = store
        self.detector = detector or ChangeDetector(store)
        self.factory = factory or get_scraper_factory()
        self.logger = logger.bind(service="scraper_service")

    async def run(self, brand_name: Optional[str] = None) -> ScrapeStats:
        """Process every active brand, or only the named one.

        Returns:
            Totals across all processed brands
        """
        brands = await self.store.list_active_brands(brand_name)
        totals = ScrapeStats()

        if not brands:
            self.logger.warning("no_active_brands", brand=brand_name)
            return totals

        self.logger.info("run_started", brands=[b.name for b in brands])

        for brand in brands:
            totals.add(await self.process_brand(brand))

        self.logger.info("run_finished", **totals.to_dict())
        return totals

    async def process_brand(
        self,
        brand: BrandConfig,
        raw_products: Optional[List[RawProduct]] = None,
    ) -> ScrapeStats:
        """Scrape (unless products are supplied) and process one brand.

        Args:
            brand: Brand to process
            raw_products: Products pushed in from outside; when None the
                registered brand scraper is executed

        Returns:
            ScrapeStats for this brand
        """
        stats = ScrapeStats()

        scraper = None
        if raw_products is None:
            scraper = self.factory.create_scraper(brand)
            if scraper is None:
                self.logger.warning("no_scraper_registered", brand=brand.name)
                return stats

        try:
            run_id = await self.store.create_scrape_run(brand.id)
        except StorageError as e:
            self.logger.error("scrape_run_create_failed", brand=brand.name, error=str(e))
            return stats

        try:
            if scraper is not None:
                raw_products = await scraper.execute()
            stats.found = len(raw_products)

            self.logger.info("processing_products", brand=brand.name, count=stats.found)

            for raw in raw_products:
                try:
                    await self.process_raw_product(brand, raw, run_id, stats)
                except Exception as e:
                    stats.errors += 1
                    self.logger.error(
                        "product_processing_failed",
                        brand=brand.name,
                        model=raw.model,
                        error=str(e),
                        exc_info=True,
                    )
                    # Continue processing other products

            await self.store.finish_scrape_run(
                run_id,
                "completed",
                found=stats.found,
                new=stats.new,
                changed=stats.changed,
                errors=stats.errors,
            )
        except (ScraperError, StorageError) as e:
            self.logger.error("brand_scrape_failed", brand=brand.name, error=str(e))
            try:
                await self.store.finish_scrape_run(
                    run_id,
                    "failed",
                    found=stats.found,
                    new=stats.new,
                    changed=stats.changed,
                    errors=stats.errors,
                    error_message=str(e),
                )
            except StorageError as finish_error:
                self.logger.error("scrape_run_finish_failed", brand=brand.name, error=str(finish_error))

        self.logger.info("brand_processed", brand=brand.name, **stats.to_dict())
        return stats

    async def process_raw_product(
        self,
        brand: BrandConfig,
        raw: RawProduct,
        run_id,
        stats: ScrapeStats,
    ) -> None:
        """Push one raw product through the pipeline, updating stats in place."""
        mapped = map_attributes(raw.specs)
        normalized = build_normalized_product(brand, raw, mapped).to_dict()

        validation = validate_product(normalized)
        if not validation.is_valid:
            stats.errors += 1
            self.logger.warning(
                "invalid_product_skipped",
                brand=brand.name,
                model=raw.model,
                errors=validation.errors,
            )
            return

        for variant in resolve_geo_variants(brand.name, raw.geo):
            payload = {
                **normalized,
                "state_province": variant.state_province,
                "currency": variant.currency,
            }
            try:
                await self._persist_variant(payload, stats)
            except StorageError as e:
                stats.errors += 1
                self.logger.error(
                    "variant_persist_failed",
                    brand=brand.name,
                    model=raw.model,
                    state_province=variant.state_province,
                    error=str(e),
                )

        if raw.raw_payload:
            try:
                await self.store.insert_raw_scraped_data(
                    run_id,
                    source_url=raw.product_url or brand.website_url,
                    **_audit_payload(raw.raw_payload),
                )
            except StorageError as e:
                self.logger.warning("raw_payload_not_stored", model=raw.model, error=str(e))

    async def _persist_variant(self, payload: Dict[str, Any], stats: ScrapeStats) -> None:
        existing = await self.store.find_existing_product(
            payload["brand"], payload["model"], payload["state_province"]
        )

        if existing:
            result = await self.detector.process_product_change(existing["id"], existing, payload)
            if result.is_changed:
                stats.changed += 1
            if result.error:
                stats.errors += 1
            return

        snapshot = build_spec_snapshot(payload)
        product_id = await self.store.insert_product({
            **payload,
            "spec_hash": generate_spec_hash(snapshot),
            "last_scraped_at": datetime.now(timezone.utc),
        })
        stats.new += 1

        result = await self.detector.record_initial_version(product_id, snapshot)
        if result.error:
            stats.errors += 1

"""Persistent record store used by the pipeline.

SpecStore is the storage interface the change detector and the
orchestrator depend on. SQLAlchemySpecStore implements it on an
AsyncSession; every write commits on its own so that the detector knows
the outcome of each step before taking the next one.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brightchoice.core.exceptions import StorageError, VersionConflictError
from brightchoice.models.brand import Brand
from brightchoice.models.change_log import ChangeLog
from brightchoice.models.product import Product
from brightchoice.models.product_version import ProductVersion
from brightchoice.models.scrape_run import RawScrapedData, ScrapeRun
from brightchoice.scrapers.base import BrandConfig

logger = structlog.get_logger(__name__)

_PRODUCT_COLUMNS = frozenset(column.key for column in Product.__table__.columns)

# Spec columns the change detector may rewrite alongside the hash
_UPDATABLE_SPEC_COLUMNS = frozenset({
    "watts", "lumens", "efficiency", "cct", "cri", "lifespan", "warranty",
    "price", "cert_ul", "cert_dlc", "cert_energy_star",
})

_VERSION_UNIQUE_MARKERS = ("uq_product_version_number", "product_versions.version_number")


def _column_value(value: Any) -> Any:
    """Floats go into Numeric columns as Decimal so no driver sees binary noise."""
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _product_record(product: Product) -> Dict[str, Any]:
    return {key: getattr(product, key) for key in _PRODUCT_COLUMNS}


class SpecStore(ABC):
    """Storage operations needed by the pipeline.

    Implementations raise StorageError for failed reads and writes and
    VersionConflictError when a (product_id, version_number) pair is taken.
    """

    @abstractmethod
    async def find_latest_version_number(self, product_id: uuid.UUID) -> int:
        """Highest version number for the product, 0 if it has none."""

    @abstractmethod
    async def insert_version(
        self,
        product_id: uuid.UUID,
        version_number: int,
        snapshot: Mapping[str, Any],
        spec_hash: str,
        change_summary: str,
    ) -> uuid.UUID:
        """Insert a ProductVersion and return its ID."""

    @abstractmethod
    async def insert_change_log_entries(
        self,
        product_id: uuid.UUID,
        version_id: uuid.UUID,
        entries: Sequence[Any],
    ) -> None:
        """Insert one ChangeLog row per FieldChange."""

    @abstractmethod
    async def update_product_hash_and_timestamp(
        self,
        product_id: uuid.UUID,
        spec_hash: str,
        scraped_at: datetime,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Store a new spec_hash and last_scraped_at, plus any spec columns in fields."""

    @abstractmethod
    async def find_existing_product(
        self,
        brand: str,
        model: str,
        state_province: str,
    ) -> Optional[Dict[str, Any]]:
        """Product record for one region, or None."""

    @abstractmethod
    async def find_product_by_id(self, product_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        """Current product record by ID, or None."""

    @abstractmethod
    async def insert_product(self, record: Mapping[str, Any]) -> uuid.UUID:
        """Insert a product row and return its ID."""

    @abstractmethod
    async def list_active_brands(self, name: Optional[str] = None) -> List[BrandConfig]:
        """Active brands, optionally restricted to one name."""

    @abstractmethod
    async def create_scrape_run(self, brand_id: uuid.UUID) -> uuid.UUID:
        """Open a run in the 'running' state."""

    @abstractmethod
    async def finish_scrape_run(
        self,
        run_id: uuid.UUID,
        status: str,
        found: int = 0,
        new: int = 0,
        changed: int = 0,
        errors: int = 0,
        error_message: Optional[str] = None,
    ) -> None:
        """Close a run with its final status and counts."""

    @abstractmethod
    async def insert_raw_scraped_data(
        self,
        run_id: uuid.UUID,
        source_url: str,
        content_type: str,
        raw_json: Optional[Any] = None,
        raw_text: Optional[str] = None,
    ) -> None:
        """Keep a raw payload for audit."""

    @abstractmethod
    async def list_versions(self, product_id: uuid.UUID) -> List[ProductVersion]:
        """Versions of a product, oldest first."""

    @abstractmethod
    async def list_change_logs(self, product_id: uuid.UUID) -> List[ChangeLog]:
        """Change log entries of a product, oldest first."""


class SQLAlchemySpecStore(SpecStore):
    """SpecStore backed by an SQLAlchemy AsyncSession."""

    def __init__(self, db: AsyncSession):
        """Initialize the store.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="spec_store")

    async def _commit(self, operation: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("commit_failed", operation=operation, error=str(e))
            raise StorageError(operation, str(e)) from e

    async def find_latest_version_number(self, product_id: uuid.UUID) -> int:
        try:
            result = await self.db.execute(
                select(func.max(ProductVersion.version_number)).where(
                    ProductVersion.product_id == product_id
                )
            )
        except SQLAlchemyError as e:
            raise StorageError("find_latest_version_number", str(e)) from e
        return result.scalar_one_or_none() or 0

    async def insert_version(
        self,
        product_id: uuid.UUID,
        version_number: int,
        snapshot: Mapping[str, Any],
        spec_hash: str,
        change_summary: str,
    ) -> uuid.UUID:
        version_id = uuid.uuid4()
        self.db.add(ProductVersion(
            id=version_id,
            product_id=product_id,
            version_number=version_number,
            snapshot=dict(snapshot),
            spec_hash=spec_hash,
            change_summary=change_summary,
        ))
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if any(marker in str(e.orig) for marker in _VERSION_UNIQUE_MARKERS):
                raise VersionConflictError(str(product_id), version_number) from e
            raise StorageError("insert_version", str(e)) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("insert_version", str(e)) from e

        self.logger.info(
            "version_inserted",
            product_id=str(product_id),
            version_number=version_number,
        )
        return version_id

    async def insert_change_log_entries(
        self,
        product_id: uuid.UUID,
        version_id: uuid.UUID,
        entries: Sequence[Any],
    ) -> None:
        self.db.add_all([
            ChangeLog(
                product_id=product_id,
                product_version_id=version_id,
                field_name=entry.field_name,
                old_value=entry.old_value,
                new_value=entry.new_value,
            )
            for entry in entries
        ])
        await self._commit("insert_change_log_entries")

    async def update_product_hash_and_timestamp(
        self,
        product_id: uuid.UUID,
        spec_hash: str,
        scraped_at: datetime,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> None:
        values: Dict[str, Any] = {"spec_hash": spec_hash, "last_scraped_at": scraped_at}
        if fields:
            values.update({
                key: _column_value(value)
                for key, value in fields.items()
                if key in _UPDATABLE_SPEC_COLUMNS
            })

        try:
            await self.db.execute(
                update(Product).where(Product.id == product_id).values(**values)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("update_product_hash_and_timestamp", str(e)) from e
        await self._commit("update_product_hash_and_timestamp")

    async def find_existing_product(
        self,
        brand: str,
        model: str,
        state_province: str,
    ) -> Optional[Dict[str, Any]]:
        try:
            result = await self.db.execute(
                select(Product).where(
                    Product.brand == brand,
                    Product.model == model,
                    Product.state_province == state_province,
                ).execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise StorageError("find_existing_product", str(e)) from e

        product = result.scalar_one_or_none()
        return _product_record(product) if product else None

    async def find_product_by_id(self, product_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        try:
            result = await self.db.execute(
                select(Product)
                .where(Product.id == product_id)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise StorageError("find_product_by_id", str(e)) from e

        product = result.scalar_one_or_none()
        return _product_record(product) if product else None

    async def insert_product(self, record: Mapping[str, Any]) -> uuid.UUID:
        product_id = uuid.uuid4()
        product = Product(id=product_id, **{
            key: _column_value(value)
            for key, value in record.items()
            if key in _PRODUCT_COLUMNS and key != "id"
        })
        self.db.add(product)
        await self._commit("insert_product")

        self.logger.info(
            "product_inserted",
            product_id=str(product_id),
            brand=record.get("brand"),
            model=record.get("model"),
            state_province=record.get("state_province"),
        )
        return product_id

    async def list_active_brands(self, name: Optional[str] = None) -> List[BrandConfig]:
        query = select(Brand).where(Brand.is_active.is_(True)).order_by(Brand.name)
        if name:
            query = query.where(Brand.name == name)

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StorageError("list_active_brands", str(e)) from e

        return [
            BrandConfig(
                id=brand.id,
                name=brand.name,
                website_url=brand.website_url or "",
                scraper_config=brand.scraper_config or {},
            )
            for brand in result.scalars().all()
        ]

    async def create_scrape_run(self, brand_id: uuid.UUID) -> uuid.UUID:
        run_id = uuid.uuid4()
        self.db.add(ScrapeRun(id=run_id, brand_id=brand_id, status="running"))
        await self._commit("create_scrape_run")
        return run_id

    async def finish_scrape_run(
        self,
        run_id: uuid.UUID,
        status: str,
        found: int = 0,
        new: int = 0,
        changed: int = 0,
        errors: int = 0,
        error_message: Optional[str] = None,
    ) -> None:
        try:
            await self.db.execute(
                update(ScrapeRun)
                .where(ScrapeRun.id == run_id)
                .values(
                    status=status,
                    products_found=found,
                    products_new=new,
                    products_changed=changed,
                    products_errored=errors,
                    error_message=error_message,
                    completed_at=datetime.now(timezone.utc),
                )
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("finish_scrape_run", str(e)) from e
        await self._commit("finish_scrape_run")

    async def insert_raw_scraped_data(
        self,
        run_id: uuid.UUID,
        source_url: str,
        content_type: str,
        raw_json: Optional[Any] = None,
        raw_text: Optional[str] = None,
    ) -> None:
        self.db.add(RawScrapedData(
            scrape_run_id=run_id,
            source_url=source_url,
            content_type=content_type,
            raw_json=raw_json,
            raw_text=raw_text,
        ))
        await self._commit("insert_raw_scraped_data")

    async def list_versions(self, product_id: uuid.UUID) -> List[ProductVersion]:
        result = await self.db.execute(
            select(ProductVersion)
            .where(ProductVersion.product_id == product_id)
            .order_by(ProductVersion.version_number)
        )
        return list(result.scalars().all())

    async def list_change_logs(self, product_id: uuid.UUID) -> List[ChangeLog]:
        result = await self.db.execute(
            select(ChangeLog)
            .where(ChangeLog.product_id == product_id)
            .order_by(ChangeLog.detected_at, ChangeLog.field_name)
        )
        return list(result.scalars().all())

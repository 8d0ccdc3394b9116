"""Pytest configuration and shared fixtures."""

from typing import Dict

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from brightchoice.detector.locks import KeyedLock
from brightchoice.models import Base, Brand
from brightchoice.scrapers.base import BrandConfig
from brightchoice.services.spec_store import SQLAlchemySpecStore


@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine):
    """Create an in-memory SQLite database session for testing."""
    SessionLocal = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with SessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def store(test_db: AsyncSession) -> SQLAlchemySpecStore:
    """Spec store on the test database."""
    return SQLAlchemySpecStore(test_db)


@pytest_asyncio.fixture
async def sample_brand(test_db: AsyncSession) -> Brand:
    """An active brand that sells in every US state and not in Canada."""
    brand = Brand(
        name="Acuity Brands",
        website_url="https://www.acuitybrands.com",
        country="US",
        is_active=True,
        scraper_config={},
    )
    test_db.add(brand)
    await test_db.commit()
    await test_db.refresh(brand)
    return brand


@pytest.fixture
def brand_config(sample_brand: Brand) -> BrandConfig:
    """BrandConfig for the sample brand."""
    return BrandConfig(
        id=sample_brand.id,
        name=sample_brand.name,
        website_url=sample_brand.website_url,
    )


@pytest.fixture
def locks() -> KeyedLock:
    """Fresh lock registry so tests don't share lock state."""
    return KeyedLock()


@pytest.fixture
def sample_specs() -> Dict[str, str]:
    """Raw spec bag as scraped from a troffer product page."""
    return {
        "System Wattage": "38 W",
        "Delivered Lumens": "4,500 lm",
        "Efficacy": "118 lm/W",
        "Color Temperature": "4000K",
        "CRI": "80",
        "L70 Lifetime": "50,000 hours",
        "Warranty": "5 years",
        "Voltage": "120-277V",
        "Mounting Type": "Recessed",
    }

"""Database seeding for development.

Creates a Brand row for every brand in the distribution table.
Run with: python -m brightchoice.db.seed
"""

import asyncio
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from brightchoice.db.session import async_session_factory, engine
from brightchoice.db.utils import create_tables
from brightchoice.geo.brand_geo_config import BRAND_GEO
from brightchoice.models import Brand

BRAND_WEBSITES: Mapping[str, str] = {
    "Acuity Brands": "https://www.acuitybrands.com",
    "Cree Lighting": "https://www.creelighting.com",
    "Philips": "https://www.usa.lighting.philips.com",
    "GE Current": "https://www.gecurrent.com",
    "Lithonia Lighting": "https://lithonia.acuitybrands.com",
    "Leviton": "https://www.leviton.com",
    "Hubbell Lighting": "https://www.hubbell.com/hubbelllighting",
    "RAB Lighting": "https://www.rablighting.com",
}


async def seed_brands(session: AsyncSession) -> int:
    """Insert the brands that are not in the table yet.

    Returns:
        Number of brands created
    """
    result = await session.execute(select(Brand.name))
    existing = set(result.scalars().all())

    created = 0
    for name, geo in BRAND_GEO.items():
        if name in existing:
            continue
        website_url: Optional[str] = BRAND_WEBSITES.get(name)
        session.add(Brand(
            name=name,
            website_url=website_url,
            country=geo.hq_country,
            is_active=True,
            scraper_config={},
        ))
        created += 1

    await session.commit()
    return created


async def main():
    """Create tables and seed brands."""
    print("Starting database seeding...")

    try:
        await create_tables(engine)
        async with async_session_factory() as session:
            created = await seed_brands(session)
        print(f"✓ Seeded {created} brands ({len(BRAND_GEO) - created} already present)")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())

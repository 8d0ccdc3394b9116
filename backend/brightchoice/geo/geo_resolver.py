"""Fan a product out into one row per state/province.

Each scraped product is stored once per region it is sold in, with that
region's currency. The brand table decides the regions unless the scraped
page itself says which market it is for.
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional

import structlog

from brightchoice.geo.brand_geo_config import ALL_CA_PROVINCES, ALL_US_STATES, get_brand_geo
from brightchoice.scrapers.base import GeoHint

logger = structlog.get_logger(__name__)

USA = "USA"
CANADA = "Canada"

CURRENCY_BY_COUNTRY: Mapping[str, str] = {USA: "USD", CANADA: "CAD"}

_COUNTRY_ALIASES: Mapping[str, str] = {
    "usa": USA,
    "us": USA,
    "united states": USA,
    "united states of america": USA,
    "canada": CANADA,
    "ca": CANADA,
    "can": CANADA,
}


@dataclass(frozen=True)
class GeoVariant:
    """One region a product row is stored for."""

    state_province: str
    currency: str
    country: str


def normalize_country(country: Optional[str]) -> Optional[str]:
    """Map free-text country names to "USA" / "Canada"; None if unrecognized."""
    if not country:
        return None
    return _COUNTRY_ALIASES.get(country.strip().lower())


def _variant(state_province: str, country: str) -> GeoVariant:
    return GeoVariant(
        state_province=state_province,
        currency=CURRENCY_BY_COUNTRY[country],
        country=country,
    )


def get_geo_variants(brand_name: str) -> List[GeoVariant]:
    """Every region the brand sells in: US states first, then Canadian provinces."""
    geo = get_brand_geo(brand_name)
    variants = [_variant(state, USA) for state in geo.us_states()]
    variants.extend(_variant(province, CANADA) for province in geo.ca_provinces())
    return variants


def resolve_geo_variants(brand_name: str, geo_hint: Optional[GeoHint] = None) -> List[GeoVariant]:
    """Regions to store a product for, honouring a geo hint from the source page.

    - Hint with a state/province: exactly that one region. The country comes
      from the hint, or from which list the code belongs to.
    - Hint with only a country: the brand's regions in that country, or every
      region of that country if the brand table lists none there.
    - No usable hint: full expansion from the brand table.
    """
    if geo_hint is None:
        return get_geo_variants(brand_name)

    country = normalize_country(geo_hint.country)
    if geo_hint.country and country is None:
        logger.warning("geo_hint_country_unknown", brand=brand_name, country=geo_hint.country)

    state = geo_hint.state_province.strip().upper() if geo_hint.state_province else None
    if state:
        if country is None:
            country = CANADA if state in ALL_CA_PROVINCES else USA
        return [_variant(state, country)]

    if country is None:
        return get_geo_variants(brand_name)

    variants = [v for v in get_geo_variants(brand_name) if v.country == country]
    if not variants:
        logger.info("geo_hint_outside_brand_footprint", brand=brand_name, country=country)
        regions = ALL_US_STATES if country == USA else ALL_CA_PROVINCES
        variants = [_variant(region, country) for region in regions]
    return variants

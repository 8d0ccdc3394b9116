"""Where each brand distributes.

Static per-brand table of the US states and Canadian provinces a brand
sells in. Sources: company "Where to Buy" pages, distributor networks and
annual reports. A brand can be headquartered in one country and still have
strong distribution in the other.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union

ALL = "ALL"

ALL_US_STATES: Tuple[str, ...] = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
)

ALL_CA_PROVINCES: Tuple[str, ...] = ("AB", "BC", "MB", "NB", "NL", "NS", "ON", "PE", "QC", "SK")

RegionList = Union[str, Tuple[str, ...]]


@dataclass(frozen=True)
class BrandGeo:
    """Distribution footprint of one brand.

    Attributes:
        hq_country: ISO country code of the headquarters ("US", "CA", "NL")
        hq_state: Two-letter HQ state, when headquartered in the US
        sells_in_usa: Brand distributes in the USA
        usa_states: ALL or the explicit list of state codes
        sells_in_canada: Brand distributes in Canada
        canadian_provinces: ALL or the explicit list of province codes
    """

    hq_country: str
    hq_state: Optional[str] = None
    sells_in_usa: bool = True
    usa_states: RegionList = ALL
    sells_in_canada: bool = False
    canadian_provinces: RegionList = ()

    def us_states(self) -> Tuple[str, ...]:
        if not self.sells_in_usa:
            return ()
        return ALL_US_STATES if self.usa_states == ALL else tuple(self.usa_states)

    def ca_provinces(self) -> Tuple[str, ...]:
        if not self.sells_in_canada:
            return ()
        return ALL_CA_PROVINCES if self.canadian_provinces == ALL else tuple(self.canadian_provinces)


# Unknown brands are assumed to sell everywhere in the US and nowhere in Canada
DEFAULT_BRAND_GEO = BrandGeo(hq_country="US")

BRAND_GEO: Mapping[str, BrandGeo] = MappingProxyType({
    # Atlanta, GA. National US distribution.
    "Acuity Brands": BrandGeo(hq_country="US", hq_state="GA"),
    # Durham, NC. Canadian presence through electrical distributors.
    "Cree Lighting": BrandGeo(
        hq_country="US",
        hq_state="NC",
        sells_in_canada=True,
        canadian_provinces=("ON", "BC", "AB", "QC"),
    ),
    # Netherlands. Separate regional sites for the US and Canada.
    "Philips": BrandGeo(
        hq_country="NL",
        sells_in_canada=True,
        canadian_provinces=ALL,
    ),
    "GE Current": BrandGeo(
        hq_country="US",
        hq_state="OH",
        sells_in_canada=True,
        canadian_provinces=("ON", "BC", "AB", "QC"),
    ),
    # Acuity sub-brand
    "Lithonia Lighting": BrandGeo(
        hq_country="US",
        hq_state="GA",
        sells_in_canada=True,
        canadian_provinces=("ON", "BC", "AB", "QC"),
    ),
    "Leviton": BrandGeo(
        hq_country="US",
        hq_state="NY",
        sells_in_canada=True,
        canadian_provinces=("ON", "BC", "AB", "QC", "MB"),
    ),
    "Hubbell Lighting": BrandGeo(
        hq_country="US",
        hq_state="CT",
        sells_in_canada=True,
        canadian_provinces=("ON", "BC", "AB", "QC"),
    ),
    "RAB Lighting": BrandGeo(
        hq_country="US",
        hq_state="NJ",
        sells_in_canada=True,
        canadian_provinces=("ON", "BC", "AB", "QC", "MB", "SK"),
    ),
    # Canadian, with a growing US distributor network
    "Lumenera": BrandGeo(
        hq_country="CA",
        usa_states=("CA", "TX", "FL", "NY", "IL", "WA", "OR"),
        sells_in_canada=True,
        canadian_provinces=ALL,
    ),
})


def get_brand_geo(brand_name: str) -> BrandGeo:
    """Look up a brand's footprint, falling back to USA-only for unknown brands."""
    return BRAND_GEO.get(brand_name, DEFAULT_BRAND_GEO)

"""
Fixture tables

Fixed lookup data the flows consult: test meter accounts, carrier prefixes,
biller categories, wallet menus and airtime tiers. Stands in for the
utility and carrier directories during development.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from cchub.sessions.models import BillerInfo, MeterAccount


class BillerCategory(BaseModel):
    """A bill category offered in the Pay Bill menu."""

    key: str = Field(description="Service type key")
    label: str = Field(description="Display name")
    emoji: str
    endpoint: str = Field(description="Resolution endpoint path template with {code}")


class WalletOption(BaseModel):
    """A mobile wallet users can pay from."""

    key: str
    label: str


BILLER_CATEGORIES: List[BillerCategory] = [
    BillerCategory(
        key="schools",
        label="School Fees",
        emoji="🏫",
        endpoint="/wp-json/cchub/v1/get-biller-code/{code}?service_type=schools",
    ),
    BillerCategory(
        key="city_council",
        label="City Council",
        emoji="🏛️",
        endpoint="/wp-json/cchub/v1/get-biller-code/{code}?service_type=city_council",
    ),
    BillerCategory(
        key="insurance",
        label="Insurance",
        emoji="🛡️",
        endpoint="/wp-json/cchub/v1/get-biller-code/{code}?service_type=insurance",
    ),
    BillerCategory(
        key="retail",
        label="Retail",
        emoji="🛒",
        endpoint="/wp-json/cchub/v1/get-biller-code/{code}?service_type=retail",
    ),
]

CATEGORY_ENDPOINTS: Dict[str, str] = {c.key: c.endpoint for c in BILLER_CATEGORIES}


def get_category(key: Optional[str]) -> Optional[BillerCategory]:
    for category in BILLER_CATEGORIES:
        if category.key == key:
            return category
    return None


def service_emoji(service_type: str) -> str:
    category = get_category(service_type)
    return category.emoji if category else "💳"


def service_label(service_type: str) -> str:
    category = get_category(service_type)
    return category.label if category else service_type


# Known ZESA test accounts
KNOWN_METERS: Dict[str, MeterAccount] = {
    "12345678901": MeterAccount(meter_number="12345678901", account_name="T. Moyo", area="Avondale, Harare"),
    "10987654321": MeterAccount(meter_number="10987654321", account_name="R. Ncube", area="Hillside, Bulawayo"),
    "1234567890": MeterAccount(meter_number="1234567890", account_name="Chitungwiza Clinic", area="Zengeza 3"),
    "555566667777": MeterAccount(meter_number="555566667777", account_name="S. Chikore", area="Borrowdale, Harare"),
}


def lookup_meter(meter_number: str) -> Optional[MeterAccount]:
    return KNOWN_METERS.get(meter_number)


# Local mobile prefixes (after the leading 0) → carrier
NETWORK_PREFIXES: Dict[str, str] = {
    "77": "Econet",
    "78": "Econet",
    "71": "NetOne",
    "73": "Telecel",
}

COUNTRY_CODE = "263"


WALLETS: Dict[str, List[WalletOption]] = {
    "zesa": [
        WalletOption(key="ecocash", label="EcoCash"),
        WalletOption(key="onemoney", label="OneMoney"),
        WalletOption(key="innbucks", label="InnBucks"),
    ],
    "airtime": [
        WalletOption(key="ecocash", label="EcoCash"),
        WalletOption(key="onemoney", label="OneMoney"),
        WalletOption(key="telecash", label="Telecash"),
    ],
    "bill": [
        WalletOption(key="ecocash", label="EcoCash"),
    ],
}


# Airtime menu: option number → amount; the last option is custom
AIRTIME_TIERS: Dict[int, float] = {1: 1.0, 2: 2.0, 3: 5.0, 4: 10.0}
AIRTIME_CUSTOM_OPTION = 5


# PayCodes the fixture resolver knows (local runs without the website)
DEMO_BILLERS: Dict[str, BillerInfo] = {
    "CCH123456": BillerInfo(service_type="schools", provider_name="Prince Edward School", biller_code="PES-001"),
    "CCH234567": BillerInfo(service_type="city_council", provider_name="City of Harare", biller_code="COH-RATES"),
    "CCH345678": BillerInfo(service_type="insurance", provider_name="First Mutual Life", biller_code="FML-2201"),
    "CCH456789": BillerInfo(service_type="retail", provider_name="OK Zimbabwe", biller_code="OKZ-0042"),
}

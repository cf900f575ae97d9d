"""Per-product fees and money formatting."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

from pydantic import BaseModel, Field

from cchub.payments.models import ProductType


class ProductPricing(BaseModel):
    """Fee rule and amount limits for one product."""

    fee_rate: Decimal = Field(description="Fee as a fraction of the base amount")
    fee_quantum: Decimal = Field(description="Rounding step for the fee, e.g. 1 or 0.01")
    min_amount: Decimal
    max_amount: Decimal


class Charges(BaseModel):
    """Fee breakdown for a purchase."""

    amount: float
    fee: float
    total: float


PRICING: Dict[ProductType, ProductPricing] = {
    ProductType.BILL: ProductPricing(
        fee_rate=Decimal("0.02"),
        fee_quantum=Decimal("1"),
        min_amount=Decimal("1"),
        max_amount=Decimal("1000000"),
    ),
    ProductType.ZESA: ProductPricing(
        fee_rate=Decimal("0.05"),
        fee_quantum=Decimal("0.01"),
        min_amount=Decimal("5"),
        max_amount=Decimal("500"),
    ),
    ProductType.AIRTIME: ProductPricing(
        fee_rate=Decimal("0.03"),
        fee_quantum=Decimal("0.01"),
        min_amount=Decimal("1"),
        max_amount=Decimal("50"),
    ),
}


def compute_charges(product: ProductType, amount: float) -> Charges:
    """Fee and total for a base amount, rounded half-up per product."""
    pricing = PRICING[product]
    base = Decimal(str(amount))
    fee = (base * pricing.fee_rate).quantize(pricing.fee_quantum, rounding=ROUND_HALF_UP)
    total = (base + fee).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return Charges(amount=float(base), fee=float(fee), total=float(total))


def within_limits(product: ProductType, amount: float) -> bool:
    pricing = PRICING[product]
    return pricing.min_amount <= Decimal(str(amount)) <= pricing.max_amount


def format_money(value: float) -> str:
    """$1,234.50 style."""
    return f"${value:,.2f}"


def fee_label(product: ProductType) -> str:
    """Fee rate as shown to users, e.g. "5%"."""
    percent = PRICING[product].fee_rate * 100
    return f"{percent.normalize():f}%"


def limit_range(product: ProductType) -> str:
    """Allowed amount range, e.g. "$5 and $500"."""
    pricing = PRICING[product]

    def whole(value: Decimal) -> str:
        if value == value.to_integral_value():
            return f"${int(value):,}"
        return format_money(float(value))

    return f"{whole(pricing.min_amount)} and {whole(pricing.max_amount)}"

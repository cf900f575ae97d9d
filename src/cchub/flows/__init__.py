"""Flows module - linear purchase conversations."""

from cchub.flows.base import FlowHandler, StepResult
from cchub.flows.menu import MenuFlow
from cchub.flows.bill import BillFlow
from cchub.flows.zesa import ZesaFlow
from cchub.flows.airtime import AirtimeFlow, detect_network
from cchub.flows.pricing import (
    Charges,
    PRICING,
    ProductPricing,
    compute_charges,
    fee_label,
    format_money,
    limit_range,
)

__all__ = [
    "FlowHandler",
    "StepResult",
    "MenuFlow",
    "BillFlow",
    "ZesaFlow",
    "AirtimeFlow",
    "detect_network",
    "Charges",
    "PRICING",
    "ProductPricing",
    "compute_charges",
    "fee_label",
    "format_money",
    "limit_range",
]

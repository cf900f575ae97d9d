"""Payments module - simulated settlement and receipts."""

from cchub.payments.models import ProductType, Receipt, TransactionRecord, TransactionState
from cchub.payments.simulator import PaymentSimulator

__all__ = [
    "ProductType",
    "Receipt",
    "TransactionRecord",
    "TransactionState",
    "PaymentSimulator",
]

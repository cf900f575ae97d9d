"""Payment models for simulated settlement."""

import uuid
from datetime import datetime, UTC
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class ProductType(str, Enum):
    """Purchasable products."""
    BILL = "BILL"
    ZESA = "ZESA"
    AIRTIME = "AIRTIME"


class TransactionState(str, Enum):
    """State machine states for a simulated transaction."""

    PENDING = "PENDING"        # Created, not yet processed
    EXECUTING = "EXECUTING"    # Currently processing
    COMPLETED = "COMPLETED"    # Successfully settled
    FAILED = "FAILED"          # Settlement failed


class TransactionRecord(BaseModel):
    """Record of one purchase attempt."""

    transaction_id: str = Field(
        default_factory=lambda: f"txn_{uuid.uuid4().hex[:12]}",
        description="Unique transaction identifier",
    )
    user_id: str = Field(description="User who initiated the purchase")
    product: ProductType = Field(description="What was bought")
    amount: float = Field(ge=0, description="Base amount")
    fee: float = Field(ge=0, description="Service fee")
    total: float = Field(ge=0, description="Amount charged")
    wallet: str = Field(description="Wallet charged")
    details: Dict[str, str] = Field(default_factory=dict, description="Product-specific details")

    state: TransactionState = Field(default=TransactionState.PENDING)
    state_history: list[tuple[str, str]] = Field(
        default_factory=list,
        description="History of (state, timestamp) transitions",
    )

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    executed_at: Optional[datetime] = Field(default=None)
    error_message: Optional[str] = Field(default=None)

    def transition_to(self, new_state: TransactionState) -> None:
        """Transition to a new state and record history."""
        self.state_history.append((self.state.value, datetime.now(UTC).isoformat()))
        self.state = new_state


class Receipt(BaseModel):
    """Outcome of a simulated purchase."""

    success: bool = Field(description="Whether the purchase settled")
    transaction_id: str = Field(description="Transaction ID")
    state: TransactionState = Field(description="Final state")
    message: str = Field(description="Human-readable result message")

    reference: Optional[str] = Field(default=None, description="Payment reference")
    token: Optional[str] = Field(default=None, description="ZESA token, electricity only")
    executed_at: Optional[datetime] = Field(default=None)

    error_code: Optional[str] = Field(default=None)

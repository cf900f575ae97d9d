"""Session models for conversation tracking."""

import uuid
from datetime import datetime, UTC
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FlowFamily(str, Enum):
    """Product a conversation state belongs to."""
    MENU = "menu"
    BILL = "bill"
    ZESA = "zesa"
    AIRTIME = "airtime"


class InputKind(str, Enum):
    """What a conversation state expects from the user."""
    CHOICE = "choice"    # Menu-style numeric option
    AMOUNT = "amount"    # Free-form money amount
    TEXT = "text"        # Meter number, phone number, PayCode


class FlowState(str, Enum):
    """Conversation states across all flows."""

    MAIN_MENU = "MAIN_MENU"
    BILL_CATEGORY_SELECTION = "BILL_CATEGORY_SELECTION"
    BILL_WAITING_FOR_CODE = "BILL_WAITING_FOR_CODE"
    BILL_AMOUNT_ENTRY = "BILL_AMOUNT_ENTRY"
    BILL_CONFIRMATION = "BILL_CONFIRMATION"
    METER_ENTRY = "METER_ENTRY"
    ZESA_AMOUNT_ENTRY = "ZESA_AMOUNT_ENTRY"
    ZESA_WALLET_SELECTION = "ZESA_WALLET_SELECTION"
    AIRTIME_RECIPIENT_ENTRY = "AIRTIME_RECIPIENT_ENTRY"
    AIRTIME_AMOUNT_CHOICE = "AIRTIME_AMOUNT_CHOICE"
    AIRTIME_CUSTOM_AMOUNT = "AIRTIME_CUSTOM_AMOUNT"
    AIRTIME_WALLET_SELECTION = "AIRTIME_WALLET_SELECTION"

    @property
    def family(self) -> FlowFamily:
        return _FAMILIES[self]

    @property
    def expects(self) -> InputKind:
        return _EXPECTS[self]


_FAMILIES = {
    FlowState.MAIN_MENU: FlowFamily.MENU,
    FlowState.BILL_CATEGORY_SELECTION: FlowFamily.BILL,
    FlowState.BILL_WAITING_FOR_CODE: FlowFamily.BILL,
    FlowState.BILL_AMOUNT_ENTRY: FlowFamily.BILL,
    FlowState.BILL_CONFIRMATION: FlowFamily.BILL,
    FlowState.METER_ENTRY: FlowFamily.ZESA,
    FlowState.ZESA_AMOUNT_ENTRY: FlowFamily.ZESA,
    FlowState.ZESA_WALLET_SELECTION: FlowFamily.ZESA,
    FlowState.AIRTIME_RECIPIENT_ENTRY: FlowFamily.AIRTIME,
    FlowState.AIRTIME_AMOUNT_CHOICE: FlowFamily.AIRTIME,
    FlowState.AIRTIME_CUSTOM_AMOUNT: FlowFamily.AIRTIME,
    FlowState.AIRTIME_WALLET_SELECTION: FlowFamily.AIRTIME,
}

_EXPECTS = {
    FlowState.MAIN_MENU: InputKind.CHOICE,
    FlowState.BILL_CATEGORY_SELECTION: InputKind.CHOICE,
    FlowState.BILL_WAITING_FOR_CODE: InputKind.TEXT,
    FlowState.BILL_AMOUNT_ENTRY: InputKind.AMOUNT,
    FlowState.BILL_CONFIRMATION: InputKind.CHOICE,
    FlowState.METER_ENTRY: InputKind.TEXT,
    FlowState.ZESA_AMOUNT_ENTRY: InputKind.AMOUNT,
    FlowState.ZESA_WALLET_SELECTION: InputKind.CHOICE,
    FlowState.AIRTIME_RECIPIENT_ENTRY: InputKind.TEXT,
    FlowState.AIRTIME_AMOUNT_CHOICE: InputKind.CHOICE,
    FlowState.AIRTIME_CUSTOM_AMOUNT: InputKind.AMOUNT,
    FlowState.AIRTIME_WALLET_SELECTION: InputKind.CHOICE,
}


class BillerInfo(BaseModel):
    """Biller metadata returned by PayCode resolution."""

    service_type: str = Field(description="Service category, e.g. schools")
    provider_name: str = Field(description="Provider display name")
    biller_code: str = Field(description="Biller reference")


class MeterAccount(BaseModel):
    """ZESA prepaid meter account."""

    meter_number: str = Field(description="Meter number")
    account_name: str = Field(description="Registered account holder")
    area: str = Field(description="Suburb / service area")


class SessionFields(BaseModel):
    """Flow-specific payload. Grows as the user advances through a flow."""

    category: Optional[str] = Field(default=None, description="Selected bill category")
    pay_code: Optional[str] = Field(default=None)
    biller: Optional[BillerInfo] = Field(default=None)

    meter_number: Optional[str] = Field(default=None)
    account: Optional[MeterAccount] = Field(default=None)

    recipient_phone: Optional[str] = Field(default=None)
    network: Optional[str] = Field(default=None)

    amount: Optional[float] = Field(default=None, description="Base amount")
    fee: Optional[float] = Field(default=None)
    total: Optional[float] = Field(default=None)
    wallet: Optional[str] = Field(default=None)

    retries: int = Field(default=0, ge=0, description="Consecutive invalid inputs at this step")


class Session(BaseModel):
    """One user's in-progress conversation."""

    session_id: str = Field(default_factory=lambda: f"session_{uuid.uuid4().hex[:12]}")
    user_id: str = Field(description="Channel identifier")
    flow: FlowState = Field(description="Current conversation state")
    fields: SessionFields = Field(default_factory=SessionFields)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    expires_at: Optional[datetime] = Field(default=None, description="Absolute expiry, set when stored")

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def advance(self, flow: FlowState, **updates) -> "Session":
        """Next state with merged fields and the retry counter reset."""
        fields = self.fields.model_copy(update={**updates, "retries": 0})
        return self.model_copy(update={"flow": flow, "fields": fields})

    def with_retry(self) -> "Session":
        """Same state with one more invalid attempt recorded."""
        fields = self.fields.model_copy(update={"retries": self.fields.retries + 1})
        return self.model_copy(update={"fields": fields})

"""Intent classification models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from cchub.parsing import normalize
from cchub.sessions.models import Session


class IntentType(str, Enum):
    """How an inbound message will be handled."""

    RESET = "RESET"                  # Universal reset keyword → main menu
    LOCKED_OUT = "LOCKED_OUT"        # Active PayCode lockout → lockout notice
    PAY_CODE = "PAY_CODE"            # Code-shaped input → PayCode redemption
    SHORTCUT = "SHORTCUT"            # Product keyword → start flow
    MENU_CHOICE = "MENU_CHOICE"      # Numeric option in a menu step
    AMOUNT_ENTRY = "AMOUNT_ENTRY"    # Amount in an amount step
    STEP_INPUT = "STEP_INPUT"        # Meter / phone / code step
    FORMAT_ERROR = "FORMAT_ERROR"    # Session exists, input not expected
    BARE_CODE = "BARE_CODE"          # Digits that look like a PayCode without prefix
    METER_NUMBER = "METER_NUMBER"    # Long digit run resembling a meter number
    MAIN_MENU = "MAIN_MENU"          # Nothing matched


class Shortcut(str, Enum):
    """Keyword shortcuts."""
    BILL = "bill"
    ZESA = "zesa"
    AIRTIME = "airtime"
    HELP = "help"


class MessageContext(BaseModel):
    """Everything the classifier may consult for one message."""

    user_id: str = Field(description="Channel identifier")
    text: str = Field(description="Raw message text")
    session: Optional[Session] = Field(default=None, description="Active session, if any")
    locked: bool = Field(default=False, description="User is in a PayCode lockout")

    @property
    def normalized(self) -> str:
        return normalize(self.text)


class Classification(BaseModel):
    """Result of classifying one message."""

    intent: IntentType = Field(description="Selected handler")
    rule_name: str = Field(description="Rule that matched")
    shortcut: Optional[Shortcut] = Field(default=None, description="Keyword shortcut target")

"""Canned outbound messages."""

from typing import Dict, List

from cchub.flows.pricing import limit_range
from cchub.payments.models import ProductType
from cchub.sessions.models import FlowState


MAIN_MENU_TEXT = (
    "👋 *Welcome to CCHub*\n\n"
    "What would you like to do?\n\n"
    "1. Pay Bill (with PayCode)\n"
    "2. Buy ZESA\n"
    "3. Buy Airtime\n"
    "4. Help\n\n"
    "Reply with 1, 2, 3 or 4"
)

HELP_TEXT = (
    "❓ *CCHub Help Center*\n\n"
    "*Available Services:*\n"
    "1️⃣ *Pay Bill* - Pay using a PayCode from our website\n"
    "2️⃣ *Buy ZESA* - Purchase electricity tokens\n"
    "3️⃣ *Buy Airtime* - Top up your mobile phone\n\n"
    "*How to use:*\n"
    "• Send \"Hi\" to start\n"
    "• Reply with 1, 2, 3 or 4\n"
    "• Follow the prompts\n\n"
    "*PayCode Format:* CCH followed by 6 digits\n"
    "*Example:* CCH123456\n\n"
    "*Support:*\n"
    "For assistance, email support@cchub.co.zw"
)

RESET_HINT = "Reply *hi* to return to the main menu."

# One per conversation state, each restating the expected input
FLOW_ERROR_MESSAGES: Dict[FlowState, str] = {
    FlowState.MAIN_MENU: f"❌ Please reply with 1, 2, 3 or 4.\n\n{RESET_HINT}",
    FlowState.BILL_CATEGORY_SELECTION: (
        f"❌ Please choose a bill category by replying 1, 2, 3 or 4.\n\n{RESET_HINT}"
    ),
    FlowState.BILL_WAITING_FOR_CODE: (
        "❌ Please send the PayCode from the website: CCH followed by 6 digits.\n\n"
        f"*Example:* CCH123456\n\n{RESET_HINT}"
    ),
    FlowState.BILL_AMOUNT_ENTRY: (
        f"❌ Please enter the amount to pay as a number between {limit_range(ProductType.BILL)}.\n\n"
        f"*Example:* 150\n\n{RESET_HINT}"
    ),
    FlowState.BILL_CONFIRMATION: (
        "❌ Please reply 1 to pay, 2 to change the amount or 3 to start over.\n\n"
        f"{RESET_HINT}"
    ),
    FlowState.METER_ENTRY: (
        "❌ Please enter a valid ZESA meter number (10-12 digits).\n\n"
        f"*Example:* 12345678901\n\n{RESET_HINT}"
    ),
    FlowState.ZESA_AMOUNT_ENTRY: (
        f"❌ Please enter an amount between {limit_range(ProductType.ZESA)}.\n\n"
        f"*Example:* 10\n\n{RESET_HINT}"
    ),
    FlowState.ZESA_WALLET_SELECTION: (
        f"❌ Please choose a wallet by replying with its number.\n\n{RESET_HINT}"
    ),
    FlowState.AIRTIME_RECIPIENT_ENTRY: (
        "❌ Please enter a Zimbabwe mobile number (e.g. 0771234567 or +263771234567), "
        f"or reply *me* to top up your own number.\n\n{RESET_HINT}"
    ),
    FlowState.AIRTIME_AMOUNT_CHOICE: (
        f"❌ Please choose an amount by replying 1 to 5.\n\n{RESET_HINT}"
    ),
    FlowState.AIRTIME_CUSTOM_AMOUNT: (
        f"❌ Please enter an amount between {limit_range(ProductType.AIRTIME)}.\n\n"
        f"*Example:* 3\n\n{RESET_HINT}"
    ),
    FlowState.AIRTIME_WALLET_SELECTION: (
        f"❌ Please choose a wallet by replying with its number.\n\n{RESET_HINT}"
    ),
}

DEFAULT_ERROR_MESSAGE = f"❌ Sorry, I didn't understand that.\n\n{RESET_HINT}"


def flow_error_message(flow: FlowState) -> str:
    return FLOW_ERROR_MESSAGES.get(flow, DEFAULT_ERROR_MESSAGE)


TOO_MANY_RETRIES = "⚠️ Too many invalid entries. Let's start again."

GENERIC_APOLOGY = (
    "⚠️ Sorry, something went wrong on our side.\n\n"
    "Please try again in a moment."
)

BILL_IN_PROGRESS = (
    "⚠️ You have a bill payment in progress.\n\n"
    "Finish it first, or reply *hi* to cancel it."
)

UPSTREAM_UNAVAILABLE = (
    "⚠️ Unable to verify PayCode right now.\n\n"
    "The service is taking too long to respond. Please try again shortly."
)

UPSTREAM_MISCONFIGURED = (
    "⚠️ Sorry, PayCode payments are temporarily unavailable.\n\n"
    "Please contact support@cchub.co.zw."
)

PAYCODE_NOT_FOUND = (
    "❌ This PayCode is not valid.\n\n"
    "Message: {reason}\n\n"
    "Please generate a new PayCode from the website."
)

PAYCODE_INCOMPLETE = (
    "⚠️ Incomplete PayCode data.\n\n"
    "Missing: {missing}\n\n"
    "Please contact support."
)


def multiple_codes_message(codes: List[str]) -> str:
    return (
        "⚠️ I found *more than one PayCode* in your message:\n"
        f"{', '.join(codes)}\n\n"
        "Please send *only one PayCode* to continue.\n\n"
        "Example:\nCCH123456"
    )


def numbered(options: List[str]) -> str:
    return "\n".join(f"{i}. {option}" for i, option in enumerate(options, start=1))

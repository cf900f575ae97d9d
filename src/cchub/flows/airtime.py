"""Airtime top-up flow: recipient → amount tier → wallet → receipt."""

import logging
import re
from typing import Optional, Tuple

from cchub.flows.base import FlowHandler, StepResult
from cchub.flows.fixtures import (
    AIRTIME_CUSTOM_OPTION,
    AIRTIME_TIERS,
    COUNTRY_CODE,
    NETWORK_PREFIXES,
    WALLETS,
)
from cchub.flows.messages import RESET_HINT, numbered
from cchub.flows.pricing import compute_charges, fee_label, format_money, limit_range, within_limits
from cchub.parsing import digits_only, normalize, parse_amount, parse_choice
from cchub.payments.models import ProductType
from cchub.payments.simulator import PaymentSimulator
from cchub.sessions.models import FlowFamily, FlowState, Session


logger = logging.getLogger(__name__)

SELF_KEYWORDS = {"me", "self", "my number", "mine"}
PHONE_SHAPE = re.compile(r"\+?[\d\s\-()]+")


def detect_network(raw: str) -> Optional[Tuple[str, str]]:
    """
    Local number and carrier for a Zimbabwe mobile number.

    Accepts 0771234567, 771234567, 263771234567 and +263 77 123 4567.
    Returns None for anything else, including unknown carrier prefixes.
    """
    if not raw or not PHONE_SHAPE.fullmatch(raw.strip()):
        return None

    digits = digits_only(raw)
    if digits.startswith(COUNTRY_CODE) and len(digits) == 12:
        local = "0" + digits[len(COUNTRY_CODE):]
    elif digits.startswith("0") and len(digits) == 10:
        local = digits
    elif digits.startswith("7") and len(digits) == 9:
        local = "0" + digits
    else:
        return None

    network = NETWORK_PREFIXES.get(local[1:3])
    if network is None:
        return None
    return local, network


class AirtimeFlow(FlowHandler):
    """Mobile airtime top-up."""

    family = FlowFamily.AIRTIME

    def __init__(self, simulator: PaymentSimulator, max_retries: int = 3):
        super().__init__(max_retries)
        self.simulator = simulator
        self.wallets = WALLETS["airtime"]

    def start(self, user_id: str) -> StepResult:
        return StepResult(
            replies=[
                "📱 *Airtime Purchase*\n\n"
                "Who is the airtime for?\n\n"
                "Reply *me* for your own number, or enter a mobile number.\n\n"
                "*Example:* 0771234567"
            ],
            session=self.begin(user_id, FlowState.AIRTIME_RECIPIENT_ENTRY),
        )

    async def step(self, session: Session, text: str) -> StepResult:
        if session.flow == FlowState.AIRTIME_RECIPIENT_ENTRY:
            return self._enter_recipient(session, text)
        if session.flow == FlowState.AIRTIME_AMOUNT_CHOICE:
            return self._choose_amount(session, text)
        if session.flow == FlowState.AIRTIME_CUSTOM_AMOUNT:
            return self._enter_custom_amount(session, text)
        if session.flow == FlowState.AIRTIME_WALLET_SELECTION:
            return self._select_wallet(session, text)
        return self.retry(session)

    def _enter_recipient(self, session: Session, text: str) -> StepResult:
        own_number = normalize(text) in SELF_KEYWORDS
        detected = detect_network(session.user_id if own_number else text)

        if detected is None:
            if own_number:
                return self.retry(
                    session,
                    "❌ I couldn't detect the network for your number.\n\n"
                    f"Please enter the mobile number instead.\n\n*Example:* 0771234567\n\n{RESET_HINT}",
                )
            return self.retry(session)

        phone, network = detected
        tiers = [format_money(amount) for amount in AIRTIME_TIERS.values()] + ["Other amount"]
        return StepResult(
            replies=[
                f"📱 Recipient: {phone} ({network})\n\n"
                "Choose an amount:\n\n"
                f"{numbered(tiers)}"
            ],
            session=session.advance(FlowState.AIRTIME_AMOUNT_CHOICE, recipient_phone=phone, network=network),
        )

    def _choose_amount(self, session: Session, text: str) -> StepResult:
        choice = parse_choice(text)
        if choice == AIRTIME_CUSTOM_OPTION:
            return StepResult(
                replies=[f"✏️ Enter an airtime amount between {limit_range(ProductType.AIRTIME)}.\n\n*Example:* 3"],
                session=session.advance(FlowState.AIRTIME_CUSTOM_AMOUNT),
            )
        if choice not in AIRTIME_TIERS:
            return self.retry(session)
        return self._summary(session, AIRTIME_TIERS[choice])

    def _enter_custom_amount(self, session: Session, text: str) -> StepResult:
        amount = parse_amount(text)
        if amount is None or not within_limits(ProductType.AIRTIME, amount):
            return self.retry(session)
        return self._summary(session, amount)

    def _summary(self, session: Session, amount: float) -> StepResult:
        charges = compute_charges(ProductType.AIRTIME, amount)
        return StepResult(
            replies=[
                "📱 *Airtime Summary*\n\n"
                f"Recipient: {session.fields.recipient_phone} ({session.fields.network})\n"
                f"Amount: {format_money(charges.amount)}\n"
                f"Fee ({fee_label(ProductType.AIRTIME)}): {format_money(charges.fee)}\n"
                f"*Total: {format_money(charges.total)}*\n\n"
                "Choose a wallet to pay from:\n\n"
                f"{numbered([w.label for w in self.wallets])}"
            ],
            session=session.advance(
                FlowState.AIRTIME_WALLET_SELECTION,
                amount=charges.amount,
                fee=charges.fee,
                total=charges.total,
            ),
        )

    def _select_wallet(self, session: Session, text: str) -> StepResult:
        choice = parse_choice(text)
        if choice is None or not 1 <= choice <= len(self.wallets):
            return self.retry(session)

        fields = session.fields
        wallet = self.wallets[choice - 1].label
        receipt = self.simulator.execute(
            user_id=session.user_id,
            product=ProductType.AIRTIME,
            amount=fields.amount,
            fee=fields.fee,
            total=fields.total,
            wallet=wallet,
            details={"recipient": fields.recipient_phone},
        )

        if not receipt.success:
            return StepResult(
                replies=[
                    "❌ *Airtime Purchase Failed*\n\n"
                    f"Reason: {receipt.message}\n\n"
                    "Please try again."
                ],
                session=None,
            )

        logger.info(f"Airtime sent to {fields.network} number")
        return StepResult(
            replies=[
                "✅ *Airtime Purchase Successful!*\n\n"
                f"Phone: {fields.recipient_phone} ({fields.network})\n"
                f"Amount: {format_money(fields.amount)}\n"
                f"Total paid: {format_money(fields.total)} via {wallet}\n"
                f"Reference: {receipt.reference}\n\n"
                "Your airtime should arrive shortly."
            ],
            session=None,
        )

"""ZESA prepaid electricity flow: meter → amount → wallet → token."""

import logging
import re

from cchub.flows.base import FlowHandler, StepResult
from cchub.flows.fixtures import WALLETS, lookup_meter
from cchub.flows.messages import RESET_HINT, numbered
from cchub.flows.pricing import PRICING, compute_charges, fee_label, format_money, within_limits
from cchub.parsing import parse_amount, parse_choice
from cchub.payments.models import ProductType
from cchub.payments.simulator import PaymentSimulator
from cchub.sessions.models import FlowFamily, FlowState, Session


logger = logging.getLogger(__name__)

METER_PATTERN = re.compile(r"\d{10,12}")


class ZesaFlow(FlowHandler):
    """Electricity token purchase."""

    family = FlowFamily.ZESA

    def __init__(self, simulator: PaymentSimulator, max_retries: int = 3):
        super().__init__(max_retries)
        self.simulator = simulator
        self.wallets = WALLETS["zesa"]

    def start(self, user_id: str) -> StepResult:
        return StepResult(
            replies=[
                "⚡ *ZESA Purchase*\n\n"
                "Please enter your meter number:\n\n"
                "*Example:* 12345678901"
            ],
            session=self.begin(user_id, FlowState.METER_ENTRY),
        )

    async def step(self, session: Session, text: str) -> StepResult:
        if session.flow == FlowState.METER_ENTRY:
            return self._enter_meter(session, text)
        if session.flow == FlowState.ZESA_AMOUNT_ENTRY:
            return self._enter_amount(session, text)
        if session.flow == FlowState.ZESA_WALLET_SELECTION:
            return self._select_wallet(session, text)
        return self.retry(session)

    def _enter_meter(self, session: Session, text: str) -> StepResult:
        meter_number = re.sub(r"[\s\-]", "", text or "")
        if not METER_PATTERN.fullmatch(meter_number):
            return self.retry(session)

        account = lookup_meter(meter_number)
        if account is None:
            logger.info("Meter number not found in known accounts")
            return self.retry(
                session,
                f"❌ Meter number {meter_number} was not found.\n\n"
                "Please check the number and try again.\n\n"
                f"*Example:* 12345678901\n\n{RESET_HINT}",
            )

        pricing = PRICING[ProductType.ZESA]
        return StepResult(
            replies=[
                "✅ *Meter verified*\n\n"
                f"Meter: {account.meter_number}\n"
                f"Account: {account.account_name}\n"
                f"Area: {account.area}\n\n"
                f"Enter the amount to purchase ({format_money(float(pricing.min_amount))}"
                f" - {format_money(float(pricing.max_amount))}).\n\n"
                "*Example:* 10"
            ],
            session=session.advance(FlowState.ZESA_AMOUNT_ENTRY, meter_number=meter_number, account=account),
        )

    def _enter_amount(self, session: Session, text: str) -> StepResult:
        amount = parse_amount(text)
        if amount is None or not within_limits(ProductType.ZESA, amount):
            return self.retry(session)

        charges = compute_charges(ProductType.ZESA, amount)
        return StepResult(
            replies=[
                "⚡ *ZESA Summary*\n\n"
                f"Meter: {session.fields.meter_number}\n"
                f"Amount: {format_money(charges.amount)}\n"
                f"Fee ({fee_label(ProductType.ZESA)}): {format_money(charges.fee)}\n"
                f"*Total: {format_money(charges.total)}*\n\n"
                "Choose a wallet to pay from:\n\n"
                f"{numbered([w.label for w in self.wallets])}"
            ],
            session=session.advance(
                FlowState.ZESA_WALLET_SELECTION,
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
            product=ProductType.ZESA,
            amount=fields.amount,
            fee=fields.fee,
            total=fields.total,
            wallet=wallet,
            details={"meter_number": fields.meter_number},
        )

        if not receipt.success:
            return StepResult(
                replies=[
                    "❌ *ZESA Purchase Failed*\n\n"
                    f"Reason: {receipt.message}\n\n"
                    "Please try again or contact support."
                ],
                session=None,
            )

        return StepResult(
            replies=[
                "✅ *ZESA Purchase Successful!*\n\n"
                f"Meter: {fields.meter_number}\n"
                f"Account: {fields.account.account_name}\n"
                f"Amount: {format_money(fields.amount)}\n"
                f"Total paid: {format_money(fields.total)} via {wallet}\n\n"
                f"Token: *{receipt.token}*\n"
                f"Reference: {receipt.reference}\n\n"
                "Thank you for using CCHub!"
            ],
            session=None,
        )

"""
Bill Payment Flow

Category → PayCode → resolution → amount → confirmation → receipt.

PayCodes are also redeemable outside this flow: ``redeem`` is called for any
code-shaped message, whatever the user was doing.
"""

import logging
from datetime import datetime, UTC
from typing import Optional

from cchub.codes.extractor import CodeExtractor
from cchub.codes.validator import CodeValidator
from cchub.errors import ErrorKind, FlowError
from cchub.flows.base import FlowHandler, StepResult
from cchub.flows.fixtures import BILLER_CATEGORIES, WALLETS, service_emoji, service_label
from cchub.flows.messages import (
    PAYCODE_INCOMPLETE,
    PAYCODE_NOT_FOUND,
    UPSTREAM_MISCONFIGURED,
    UPSTREAM_UNAVAILABLE,
    multiple_codes_message,
    numbered,
)
from cchub.flows.pricing import compute_charges, format_money, within_limits
from cchub.integrations.resolver import BaseCodeResolver, ResolutionResult, ResolutionStatus
from cchub.parsing import parse_amount, parse_choice
from cchub.payments.models import ProductType
from cchub.payments.simulator import PaymentSimulator
from cchub.sessions.models import FlowFamily, FlowState, Session


logger = logging.getLogger(__name__)


CONFIRM_PAY = 1
CONFIRM_CHANGE_AMOUNT = 2
CONFIRM_RESTART = 3


class BillFlow(FlowHandler):
    """Bill payment via a PayCode generated on the website."""

    family = FlowFamily.BILL

    def __init__(
        self,
        extractor: CodeExtractor,
        validator: CodeValidator,
        resolver: BaseCodeResolver,
        simulator: PaymentSimulator,
        max_retries: int = 3,
    ):
        super().__init__(max_retries)
        self.extractor = extractor
        self.validator = validator
        self.resolver = resolver
        self.simulator = simulator

    def start(self, user_id: str) -> StepResult:
        options = [f"{c.emoji} {c.label}" for c in BILLER_CATEGORIES]
        return StepResult(
            replies=[
                "🧾 *Pay Bill*\n\n"
                "Select a category:\n\n"
                f"{numbered(options)}\n\n"
                "Or send your PayCode directly, e.g. *CCH123456*."
            ],
            session=self.begin(user_id, FlowState.BILL_CATEGORY_SELECTION),
        )

    async def step(self, session: Session, text: str) -> StepResult:
        if session.flow == FlowState.BILL_CATEGORY_SELECTION:
            return self._select_category(session, text)
        if session.flow == FlowState.BILL_WAITING_FOR_CODE:
            return await self.redeem(session.user_id, text, session)
        if session.flow == FlowState.BILL_AMOUNT_ENTRY:
            return self._enter_amount(session, text)
        if session.flow == FlowState.BILL_CONFIRMATION:
            return self._confirm(session, text)
        return self.retry(session)

    async def redeem(self, user_id: str, text: str, session: Optional[Session] = None) -> StepResult:
        """
        Validate and resolve a PayCode from a message.

        Rejections leave the current session in place (a lockout clears
        it). Upstream failures raise FlowError.

        Raises:
            FlowError: Resolution failed or the code is unknown
        """
        codes = self.extractor.extract_all(text)
        if len(codes) > 1:
            logger.info(f"Message carried {len(codes)} PayCodes; asking for one")
            return StepResult(replies=[multiple_codes_message(codes)], session=session)

        candidate = codes[0] if codes else (self.extractor.fragment(text) or text)
        check = self.validator.validate(self.extractor.clean(candidate), user_id, raw=text)
        if not check.ok:
            return StepResult(replies=[check.message], session=None if check.locked_out else session)

        category = None
        if session is not None and session.flow.family == FlowFamily.BILL:
            category = session.fields.category

        result = await self.resolver.resolve(check.code, category)
        return self._on_resolution(user_id, result, category)

    def _on_resolution(self, user_id: str, result: ResolutionResult, category: Optional[str]) -> StepResult:
        if result.status == ResolutionStatus.RESOLVED:
            biller = result.biller
            return StepResult(
                replies=[
                    f"{service_emoji(biller.service_type)} *Payment detected ✅*\n\n"
                    f"Service: {service_label(biller.service_type)}\n"
                    f"Provider: {biller.provider_name}\n"
                    f"Biller Code: {biller.biller_code}\n\n"
                    "Please enter the amount to pay.\n\n"
                    "*Example:* 150"
                ],
                session=self.begin(
                    user_id,
                    FlowState.BILL_AMOUNT_ENTRY,
                    category=category or biller.service_type,
                    pay_code=result.code,
                    biller=biller,
                ),
            )

        if result.is_retryable:
            self.validator.release(user_id, result.code)
            raise FlowError(ErrorKind.UPSTREAM_UNAVAILABLE, UPSTREAM_UNAVAILABLE)

        if result.status == ResolutionStatus.UNAUTHORIZED:
            self.validator.release(user_id, result.code)
            raise FlowError(ErrorKind.UPSTREAM_MISCONFIGURED, UPSTREAM_MISCONFIGURED)

        if result.status == ResolutionStatus.INCOMPLETE:
            self.validator.release(user_id, result.code)
            raise FlowError(
                ErrorKind.UPSTREAM_MISCONFIGURED,
                PAYCODE_INCOMPLETE.format(missing=", ".join(result.missing_fields)),
            )

        raise FlowError(
            ErrorKind.NOT_FOUND,
            PAYCODE_NOT_FOUND.format(reason=result.message or "Code may be expired or already used"),
        )

    def _select_category(self, session: Session, text: str) -> StepResult:
        choice = parse_choice(text)
        if choice is None or not 1 <= choice <= len(BILLER_CATEGORIES):
            return self.retry(session)

        category = BILLER_CATEGORIES[choice - 1]
        return StepResult(
            replies=[
                f"{category.emoji} *{category.label}*\n\n"
                "Please send the PayCode from the website.\n\n"
                "*Example:* CCH123456"
            ],
            session=session.advance(FlowState.BILL_WAITING_FOR_CODE, category=category.key),
        )

    def _enter_amount(self, session: Session, text: str) -> StepResult:
        amount = parse_amount(text)
        if amount is None or not within_limits(ProductType.BILL, amount):
            return self.retry(session)

        charges = compute_charges(ProductType.BILL, amount)
        biller = session.fields.biller
        return StepResult(
            replies=[
                "🧾 *Confirm Payment*\n\n"
                f"Provider: {biller.provider_name}\n"
                f"Biller Code: {biller.biller_code}\n"
                f"PayCode: {session.fields.pay_code}\n\n"
                f"Amount: {format_money(charges.amount)}\n"
                f"Fee: {format_money(charges.fee)}\n"
                f"*Total: {format_money(charges.total)}*\n\n"
                f"{numbered(['Pay', 'Change amount', 'Start over'])}"
            ],
            session=session.advance(
                FlowState.BILL_CONFIRMATION,
                amount=charges.amount,
                fee=charges.fee,
                total=charges.total,
            ),
        )

    def _confirm(self, session: Session, text: str) -> StepResult:
        choice = parse_choice(text)

        if choice == CONFIRM_CHANGE_AMOUNT:
            return StepResult(
                replies=["✏️ Please enter the new amount to pay.\n\n*Example:* 150"],
                session=session.advance(FlowState.BILL_AMOUNT_ENTRY, amount=None, fee=None, total=None),
            )
        if choice == CONFIRM_RESTART:
            return self.start(session.user_id)
        if choice != CONFIRM_PAY:
            return self.retry(session)

        fields = session.fields
        wallet = WALLETS["bill"][0].label
        receipt = self.simulator.execute(
            user_id=session.user_id,
            product=ProductType.BILL,
            amount=fields.amount,
            fee=fields.fee,
            total=fields.total,
            wallet=wallet,
            details={"pay_code": fields.pay_code, "biller_code": fields.biller.biller_code},
        )

        if not receipt.success:
            return StepResult(
                replies=[
                    "❌ *Payment Failed*\n\n"
                    f"Reason: {receipt.message}\n\n"
                    "Please try again or contact support."
                ],
                session=None,
            )

        executed_at = receipt.executed_at or datetime.now(UTC)
        return StepResult(
            replies=[
                "✅ *Payment Successful!*\n\n"
                f"Amount: {format_money(fields.total)}\n"
                f"Service: {service_label(fields.biller.service_type)}\n"
                f"Provider: {fields.biller.provider_name}\n"
                f"Reference: {receipt.reference}\n"
                f"Date: {executed_at:%Y-%m-%d %H:%M} UTC\n\n"
                "Thank you for using CCHub!"
            ],
            session=None,
        )

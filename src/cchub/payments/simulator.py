"""Payment Simulator - stands in for the wallet and utility gateways."""

import logging
import random
import uuid
from datetime import datetime, timedelta, UTC
from typing import Dict, Optional

from cchub.payments.models import ProductType, Receipt, TransactionRecord, TransactionState


logger = logging.getLogger(__name__)


REFERENCE_PREFIXES = {
    ProductType.BILL: "CCHB",
    ProductType.ZESA: "ZESA",
    ProductType.AIRTIME: "AIR",
}


class PaymentSimulator:
    """
    Simulated settlement.

    Provides:
    - Idempotency checks (a double-tapped "Pay" does not charge twice)
    - Reference numbers per product
    - 20-digit ZESA tokens
    - Random failure simulation (for testing)

    No money moves. A real deployment replaces this with gateway calls.
    """

    def __init__(self, failure_rate: float = 0.0, idempotency_window: timedelta = timedelta(minutes=1)):
        """
        Initialize the simulator.

        Args:
            failure_rate: Probability of simulated failure (0.0-1.0)
            idempotency_window: How long an identical purchase is treated as a duplicate
        """
        self.failure_rate = failure_rate
        self.idempotency_window = idempotency_window
        self.idempotency_store: Dict[str, tuple[str, datetime]] = {}
        self.transaction_log: Dict[str, TransactionRecord] = {}

        logger.info(f"Payment Simulator initialized (failure_rate={failure_rate})")

    def execute(
        self,
        user_id: str,
        product: ProductType,
        amount: float,
        fee: float,
        total: float,
        wallet: str,
        details: Optional[Dict[str, str]] = None,
    ) -> Receipt:
        """Settle a purchase and return its receipt."""
        record = TransactionRecord(
            user_id=user_id,
            product=product,
            amount=amount,
            fee=fee,
            total=total,
            wallet=wallet,
            details=details or {},
        )

        key = self._idempotency_key(record)
        if existing := self._check_idempotency(key):
            logger.warning(f"Duplicate purchase detected: {existing}")
            return Receipt(
                success=False,
                transaction_id=record.transaction_id,
                state=TransactionState.FAILED,
                message="Duplicate purchase - already processed",
                error_code="DUPLICATE",
            )

        record.transition_to(TransactionState.EXECUTING)

        if random.random() < self.failure_rate:
            record.transition_to(TransactionState.FAILED)
            record.error_message = "Simulated wallet failure"
            self.transaction_log[record.transaction_id] = record
            logger.warning(f"Purchase failed: {record.transaction_id}")
            return Receipt(
                success=False,
                transaction_id=record.transaction_id,
                state=TransactionState.FAILED,
                message="Payment failed - please try again",
                error_code="WALLET_ERROR",
            )

        record.transition_to(TransactionState.COMPLETED)
        record.executed_at = datetime.now(UTC)
        self.idempotency_store[key] = (record.transaction_id, record.executed_at)
        self.transaction_log[record.transaction_id] = record

        reference = f"{REFERENCE_PREFIXES[product]}{uuid.uuid4().hex[:10].upper()}"
        token = self._generate_token() if product == ProductType.ZESA else None

        logger.info(
            f"Purchase settled: {record.transaction_id} {product.value} "
            f"${record.total:.2f} via {wallet} [Ref: {reference}]"
        )

        return Receipt(
            success=True,
            transaction_id=record.transaction_id,
            state=TransactionState.COMPLETED,
            message=f"{product.value} purchase of ${record.total:.2f} successful",
            reference=reference,
            token=token,
            executed_at=record.executed_at,
        )

    def get_transaction(self, transaction_id: str) -> Optional[TransactionRecord]:
        return self.transaction_log.get(transaction_id)

    def get_transaction_history(self, user_id: str, limit: int = 10) -> list[TransactionRecord]:
        """Most recent transactions for a user."""
        user_txns = [t for t in self.transaction_log.values() if t.user_id == user_id]
        return sorted(user_txns, key=lambda t: t.created_at, reverse=True)[:limit]

    def _idempotency_key(self, record: TransactionRecord) -> str:
        details = ",".join(f"{k}={v}" for k, v in sorted(record.details.items()))
        return f"{record.user_id}:{record.product.value}:{record.total}:{details}"

    def _check_idempotency(self, key: str) -> Optional[str]:
        """Transaction ID of a recent identical purchase, if any."""
        if key in self.idempotency_store:
            transaction_id, settled_at = self.idempotency_store[key]
            if datetime.now(UTC) - settled_at < self.idempotency_window:
                return transaction_id
            del self.idempotency_store[key]
        return None

    def _generate_token(self) -> str:
        """20-digit prepaid electricity token, grouped in fours."""
        digits = "".join(str(random.randint(0, 9)) for _ in range(20))
        return "-".join(digits[i:i + 4] for i in range(0, 20, 4))

"""PayCode Validator - format checks plus per-user attempt limiting."""

import logging
import math
import re
from datetime import datetime, timedelta, UTC
from typing import Callable, List, Optional

from cchub.codes.models import CodeCheckResult, CodeViolation, RateLimitRecord
from cchub.codes.rules import CODE_RULES, CodeCheckContext, CodeRule, is_suspicious_digits
from cchub.errors import ErrorKind
from cchub.storage import InMemoryStore, KeyedStore


logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class CodeValidator:
    """
    Validates PayCode submissions and enforces abuse limits.

    Rate-limit states per user:

    Clear (counting) → [threshold reached] → Locked → [locked_until elapsed] → Clear

    Every rejection except the lockout path increments the attempt counter
    (by 2 when the digits match the suspicious denylist). Reaching the
    threshold turns the reply into a lockout notice.
    """

    def __init__(
        self,
        store: Optional[KeyedStore[RateLimitRecord]] = None,
        prefix: str = "CCH",
        digits: int = 6,
        max_attempts: int = 3,
        window: timedelta = timedelta(minutes=5),
        lockout: timedelta = timedelta(minutes=15),
        idle_expiry: timedelta = timedelta(hours=1),
        max_raw_length: int = 64,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the validator.

        Args:
            store: Rate-limit record store (default: in-memory)
            prefix: Canonical code prefix
            digits: Digits after the prefix
            max_attempts: Invalid submissions before lockout
            window: Idle time after which the attempt count resets
            lockout: Lockout duration
            idle_expiry: Idle time after which an unlocked record is dropped
            max_raw_length: Longest raw message accepted as a code carrier
            clock: Returns the current UTC time (injectable for tests)
        """
        self.store = store if store is not None else InMemoryStore()
        self.prefix = prefix.upper()
        self.digits = digits
        self.max_attempts = max_attempts
        self.window = window
        self.lockout = lockout
        self.idle_expiry = idle_expiry
        self.max_raw_length = max_raw_length
        self.clock = clock or utc_now
        self.rules: List[CodeRule] = list(CODE_RULES)

        logger.info(
            f"Code Validator initialized (prefix={self.prefix}, digits={digits}, "
            f"max_attempts={max_attempts})"
        )

    @classmethod
    def from_settings(cls, settings, store=None, clock=None) -> "CodeValidator":
        return cls(
            store=store,
            prefix=settings.code_prefix,
            digits=settings.code_digits,
            max_attempts=settings.max_code_attempts,
            window=timedelta(minutes=settings.rate_window_minutes),
            lockout=timedelta(minutes=settings.lockout_minutes),
            idle_expiry=timedelta(minutes=settings.rate_record_idle_minutes),
            max_raw_length=settings.max_raw_code_length,
            clock=clock,
        )

    def validate(self, code: Optional[str], user_id: str, raw: Optional[str] = None) -> CodeCheckResult:
        """
        Validate one submission.

        Args:
            code: Cleaned code (see CodeExtractor.clean)
            user_id: Channel identifier of the sender
            raw: Original message, for the raw-length cap

        Returns:
            CodeCheckResult, never raises for user input
        """
        now = self.clock()
        record = self._load(user_id, now)

        # 1. Lockout: reject without counting
        if record.is_locked(now):
            remaining = self._remaining_minutes(record, now)
            logger.warning(f"PayCode attempt during lockout ({remaining} min left)")
            return CodeCheckResult(
                ok=False,
                rejection=ErrorKind.RATE_LIMITED,
                rule_name="lockout",
                message=self.lockout_message(remaining),
                attempts=record.attempts,
                remaining_minutes=remaining,
                locked_out=True,
            )

        # 2. Window reset after idling
        if record.last_attempt_at and now - record.last_attempt_at > self.window:
            record.attempts = 0
            record.window_started_at = None

        context = CodeCheckContext(
            prefix=self.prefix,
            digits=self.digits,
            raw=raw,
            last_accepted_code=record.last_accepted_code,
            max_raw_length=self.max_raw_length,
        )
        suspicious = self._is_suspicious(code)

        for rule in self.rules:
            passed, violation = rule.evaluate(code, context)
            if not passed:
                return self._reject(record, violation, suspicious, now)

        record.attempts = 0
        record.window_started_at = None
        record.last_attempt_at = now
        record.last_accepted_code = code
        self.store.put(user_id, record)

        logger.info(f"PayCode accepted: {code}")
        return CodeCheckResult(ok=True, code=code, suspicious=suspicious)

    def check_format(self, code: Optional[str]) -> Optional[CodeViolation]:
        """First format violation for a code, without touching any user's record."""
        context = CodeCheckContext(
            prefix=self.prefix,
            digits=self.digits,
            max_raw_length=self.max_raw_length,
        )
        for rule in self.rules:
            passed, violation = rule.evaluate(code, context)
            if not passed:
                return violation
        return None

    def check_lockout(self, user_id: str) -> Optional[CodeCheckResult]:
        """Lockout notice if the user is currently locked, else None."""
        now = self.clock()
        record = self.store.get(user_id)
        if record is None or not record.is_locked(now):
            return None

        remaining = self._remaining_minutes(record, now)
        return CodeCheckResult(
            ok=False,
            rejection=ErrorKind.RATE_LIMITED,
            rule_name="lockout",
            message=self.lockout_message(remaining),
            attempts=record.attempts,
            remaining_minutes=remaining,
            locked_out=True,
        )

    def is_locked(self, user_id: str) -> bool:
        return self.check_lockout(user_id) is not None

    def release(self, user_id: str, code: str) -> None:
        """Forget an accepted code that could not be resolved, so a retry is not a replay."""
        record = self.store.get(user_id)
        if record and record.last_accepted_code == code:
            record.last_accepted_code = None
            self.store.put(user_id, record)
            logger.debug(f"Released PayCode {code} for retry")

    def get_record(self, user_id: str) -> Optional[RateLimitRecord]:
        return self.store.get(user_id)

    def sweep_idle(self) -> int:
        """Drop records idle past the expiry with no lockout in effect."""
        now = self.clock()

        def is_stale(record: RateLimitRecord) -> bool:
            if record.is_locked(now):
                return False
            last = record.last_activity()
            return last is None or now - last > self.idle_expiry

        removed = self.store.sweep(is_stale)
        if removed:
            logger.info(f"Rate limiter cleanup: removed {removed} idle records")
        return removed

    def lockout_message(self, remaining_minutes: int) -> str:
        unit = "minute" if remaining_minutes == 1 else "minutes"
        return (
            f"🔒 *Too many invalid PayCode attempts.*\n\n"
            f"PayCode entry is locked. Please try again in {remaining_minutes} {unit}.\n\n"
            f"Reply *hi* for the main menu."
        )

    def _load(self, user_id: str, now: datetime) -> RateLimitRecord:
        """Fetch or create the record, clearing an expired lockout."""
        record = self.store.get(user_id)
        if record is None:
            return RateLimitRecord(user_id=user_id)

        if record.locked_until is not None and now >= record.locked_until:
            # Lockout expired: start counting afresh, keep the replay guard
            record.attempts = 0
            record.locked_until = None
            record.window_started_at = None
            logger.info("PayCode lockout expired")

        return record

    def _reject(
        self,
        record: RateLimitRecord,
        violation: CodeViolation,
        suspicious: bool,
        now: datetime,
    ) -> CodeCheckResult:
        """Count a rejection and convert it to a lockout at the threshold."""
        penalty = 2 if suspicious else 1
        record.attempts += penalty
        if record.window_started_at is None:
            record.window_started_at = now
        record.last_attempt_at = now

        message = violation.message
        remaining = None
        locked_out = False

        if record.attempts >= self.max_attempts:
            record.locked_until = now + self.lockout
            remaining = self._remaining_minutes(record, now)
            message = self.lockout_message(remaining)
            locked_out = True
            logger.warning(
                f"PayCode lockout triggered after {record.attempts} attempts "
                f"(last rule: {violation.rule_name})"
            )
        else:
            logger.info(
                f"PayCode rejected by '{violation.rule_name}' "
                f"(attempts={record.attempts}, suspicious={suspicious})"
            )

        self.store.put(record.user_id, record)

        return CodeCheckResult(
            ok=False,
            rejection=violation.kind,
            rule_name=violation.rule_name,
            message=message,
            attempts=record.attempts,
            remaining_minutes=remaining,
            locked_out=locked_out,
            suspicious=suspicious,
        )

    def _is_suspicious(self, code: Optional[str]) -> bool:
        if not code:
            return False
        digits = re.sub(r"\D", "", code)
        return len(digits) == self.digits and is_suspicious_digits(digits)

    def _remaining_minutes(self, record: RateLimitRecord, now: datetime) -> int:
        seconds = (record.locked_until - now).total_seconds()
        return max(1, math.ceil(seconds / 60))

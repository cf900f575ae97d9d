"""PayCode validation and rate-limit models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from cchub.errors import ErrorKind


class CodeViolation(BaseModel):
    """Details of a failed PayCode check."""

    rule_name: str = Field(description="Name of the violated rule")
    kind: ErrorKind = Field(description="Rejection category")
    message: str = Field(description="Corrective message for the user")


class RateLimitRecord(BaseModel):
    """Per-user PayCode abuse history. Outlives any single session."""

    user_id: str = Field(description="Channel identifier")
    attempts: int = Field(default=0, ge=0, description="Invalid submissions in current window")
    window_started_at: Optional[datetime] = Field(default=None, description="First attempt in window")
    last_attempt_at: Optional[datetime] = Field(default=None, description="Most recent attempt")
    locked_until: Optional[datetime] = Field(default=None, description="Lockout expiry")
    last_accepted_code: Optional[str] = Field(default=None, description="Last code that validated")

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and now < self.locked_until

    def last_activity(self) -> Optional[datetime]:
        """Latest timestamp this record was touched."""
        stamps = [t for t in (self.last_attempt_at, self.locked_until) if t is not None]
        return max(stamps) if stamps else None


class CodeCheckResult(BaseModel):
    """Discriminated result of validating one PayCode submission."""

    ok: bool = Field(description="Whether the code was accepted")
    code: Optional[str] = Field(default=None, description="Canonical code when accepted")
    rejection: Optional[ErrorKind] = Field(default=None, description="Why it was rejected")
    rule_name: Optional[str] = Field(default=None, description="Rule that rejected it")
    message: str = Field(default="", description="User-facing message")

    attempts: int = Field(default=0, description="Attempt count after this submission")
    remaining_minutes: Optional[int] = Field(default=None, description="Minutes left in lockout")
    locked_out: bool = Field(default=False, description="This submission triggered or hit a lockout")
    suspicious: bool = Field(default=False, description="Digits matched the suspicious denylist")

    @property
    def is_rate_limited(self) -> bool:
        return self.rejection == ErrorKind.RATE_LIMITED

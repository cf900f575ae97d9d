"""Ordered PayCode checks.

Each rule inspects a (normally cleaned) code and either passes or returns a
typed violation. Rules run in list order and the first failure wins, so the
order of ``CODE_RULES`` is part of the behavior.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from pydantic import BaseModel, Field

from cchub.codes.models import CodeViolation
from cchub.errors import ErrorKind


EXAMPLE_DIGITS = "123456"


class CodeCheckContext(BaseModel):
    """Inputs a rule may need beyond the code itself."""

    prefix: str = Field(description="Canonical prefix, uppercase")
    digits: int = Field(description="Digit count after the prefix")
    raw: Optional[str] = Field(default=None, description="Message the code came from")
    last_accepted_code: Optional[str] = Field(default=None)
    max_raw_length: int = Field(default=64)

    @property
    def example(self) -> str:
        return f"{self.prefix}{EXAMPLE_DIGITS[:self.digits].ljust(self.digits, '0')}"

    @property
    def format_hint(self) -> str:
        return (
            f"Please send a valid PayCode starting with {self.prefix} "
            f"followed by {self.digits} digits.\n\n"
            f"Example: *{self.example}*"
        )


class CodeRule(ABC):
    """Abstract base class for PayCode checks."""

    def __init__(self, name: str, kind: ErrorKind, description: str):
        """
        Initialize a PayCode rule.

        Args:
            name: Unique rule identifier
            kind: Rejection category reported on failure
            description: Human-readable description
        """
        self.name = name
        self.kind = kind
        self.description = description

    @abstractmethod
    def evaluate(
        self,
        code: Optional[str],
        context: CodeCheckContext,
    ) -> Tuple[bool, Optional[CodeViolation]]:
        """
        Evaluate the rule against a code.

        Returns:
            Tuple of (passed: bool, violation: CodeViolation or None)
        """
        pass

    def create_violation(self, message: str) -> CodeViolation:
        """Create a violation for this rule."""
        return CodeViolation(rule_name=self.name, kind=self.kind, message=message)


class NonEmptyRule(CodeRule):
    """Something must survive cleaning."""

    def __init__(self):
        super().__init__(
            name="non_empty",
            kind=ErrorKind.FORMAT_INVALID,
            description="Code must not be empty after cleaning",
        )

    def evaluate(self, code, context):
        if not code:
            return False, self.create_violation(
                f"❌ No valid PayCode found.\n\n{context.format_hint}"
            )
        return True, None


class PrefixPresenceRule(CodeRule):
    """Code must start with the prefix. Bare digits get a pointed correction."""

    def __init__(self):
        super().__init__(
            name="prefix_presence",
            kind=ErrorKind.FORMAT_INVALID,
            description="Code must start with the PayCode prefix",
        )

    def evaluate(self, code, context):
        if code.upper().startswith(context.prefix):
            return True, None

        if code.isdigit() and len(code) == context.digits:
            return False, self.create_violation(
                f"⚠️ PayCodes start with *{context.prefix}*.\n\n"
                f"Did you mean *{context.prefix}{code}*?\n\n"
                f"Please resend the full PayCode."
            )

        return False, self.create_violation(
            f"❌ That doesn't look like a PayCode.\n\n{context.format_hint}"
        )


class PrefixCaseRule(CodeRule):
    """Prefix must be in canonical casing."""

    def __init__(self):
        super().__init__(
            name="prefix_case",
            kind=ErrorKind.FORMAT_INVALID,
            description="Prefix must be uppercase",
        )

    def evaluate(self, code, context):
        if code[:len(context.prefix)] != context.prefix:
            return False, self.create_violation(
                f"❌ The PayCode prefix must be written *{context.prefix}*.\n\n"
                f"Example: *{context.example}*"
            )
        return True, None


class LengthRule(CodeRule):
    """Prefix plus exactly N digits."""

    def __init__(self):
        super().__init__(
            name="length",
            kind=ErrorKind.FORMAT_INVALID,
            description="Code must be prefix plus exactly N digits",
        )

    def evaluate(self, code, context):
        expected = len(context.prefix) + context.digits
        if len(code) != expected:
            return False, self.create_violation(
                f"❌ A PayCode is {context.prefix} followed by exactly "
                f"{context.digits} digits ({expected} characters). "
                f"You sent {len(code)}.\n\n"
                f"Example: *{context.example}*"
            )
        return True, None


class DigitSectionRule(CodeRule):
    """Everything after the prefix must be ASCII digits."""

    def __init__(self):
        super().__init__(
            name="digit_section",
            kind=ErrorKind.FORMAT_INVALID,
            description="Only digits may follow the prefix",
        )

    def evaluate(self, code, context):
        if not re.fullmatch(r"[0-9]+", code[len(context.prefix):]):
            return False, self.create_violation(
                f"❌ Only digits may follow *{context.prefix}*.\n\n"
                f"Example: *{context.example}*"
            )
        return True, None


class ReplayRule(CodeRule):
    """Reject immediate resubmission of the last accepted code."""

    def __init__(self):
        super().__init__(
            name="replay",
            kind=ErrorKind.SECURITY_REJECTED,
            description="Code must differ from the last accepted code",
        )

    def evaluate(self, code, context):
        if context.last_accepted_code and code == context.last_accepted_code:
            return False, self.create_violation(
                f"🔐 PayCode *{code}* was already submitted.\n\n"
                f"Please generate a new PayCode from the website."
            )
        return True, None


class RawLengthRule(CodeRule):
    """Absurdly long messages are not processed as codes."""

    def __init__(self):
        super().__init__(
            name="raw_length",
            kind=ErrorKind.SECURITY_REJECTED,
            description="Raw message must be within the length cap",
        )

    def evaluate(self, code, context):
        if context.raw is not None and len(context.raw) > context.max_raw_length:
            return False, self.create_violation(
                "🔐 That message is too long to process.\n\n"
                f"Please send only your PayCode, e.g. *{context.example}*"
            )
        return True, None


def is_suspicious_digits(digits: str) -> bool:
    """
    Denylist check on a digit section.

    Matches all-same runs (including all zeros) and strictly ascending or
    descending sequences such as 123456 or 987654.
    """
    if len(digits) < 2 or not digits.isdigit():
        return False

    if len(set(digits)) == 1:
        return True

    steps = {int(b) - int(a) for a, b in zip(digits, digits[1:])}
    return steps == {1} or steps == {-1}


# Checks run in this order. The suspicious-pattern check never rejects on its
# own; the validator applies it as a penalty multiplier on any rejection.
CODE_RULES = [
    NonEmptyRule(),
    PrefixPresenceRule(),
    PrefixCaseRule(),
    LengthRule(),
    DigitSectionRule(),
    ReplayRule(),
    RawLengthRule(),
]

"""PayCode module - extraction, validation and attempt limiting."""

from cchub.codes.extractor import CodeExtractor
from cchub.codes.models import CodeCheckResult, CodeViolation, RateLimitRecord
from cchub.codes.rules import CODE_RULES, CodeRule, is_suspicious_digits
from cchub.codes.validator import CodeValidator

__all__ = [
    "CodeExtractor",
    "CodeCheckResult",
    "CodeViolation",
    "RateLimitRecord",
    "CODE_RULES",
    "CodeRule",
    "is_suspicious_digits",
    "CodeValidator",
]

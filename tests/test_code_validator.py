"""Tests for PayCode validation and attempt limiting."""

from datetime import timedelta

import pytest

from cchub.codes import CodeExtractor, CodeValidator, is_suspicious_digits
from cchub.errors import ErrorKind

from helpers import FakeClock


class TestFormatChecks:
    """Ordered format rules."""

    def setup_method(self):
        self.clock = FakeClock()
        self.extractor = CodeExtractor()
        self.validator = CodeValidator(clock=self.clock)

    def test_valid_code_accepted(self):
        result = self.validator.validate("CCH482913", "user_1")

        assert result.ok
        assert result.code == "CCH482913"
        assert result.rejection is None

    @pytest.mark.parametrize("raw", ["cch482913", " CCH-482-913 ", "cch 482 913", "Cch.482913"])
    def test_cleaned_variants_validate_to_canonical(self, raw):
        validator = CodeValidator(clock=self.clock)
        result = validator.validate(self.extractor.clean(raw), "user_1", raw=raw)

        assert result.ok
        assert result.code == "CCH482913"

    @pytest.mark.parametrize(
        "raw",
        ["CCH482913 5", "pay CCH482913 50 dollars", "cch-482-913\n2", "CCH482913 50 dollars"],
    )
    def test_code_followed_by_numbers_validates(self, raw):
        validator = CodeValidator(clock=self.clock)
        result = validator.validate(self.extractor.clean(raw), "user_1", raw=raw)

        assert result.ok
        assert result.code == "CCH482913"
        assert validator.get_record("user_1").attempts == 0

    def test_bare_digits_suggest_prefixed_form(self):
        result = self.validator.validate(self.extractor.clean("482913"), "user_1")

        assert not result.ok
        assert result.rejection == ErrorKind.FORMAT_INVALID
        assert result.rule_name == "prefix_presence"
        assert "CCH482913" in result.message

    def test_empty_code(self):
        result = self.validator.validate(None, "user_1")
        assert result.rule_name == "non_empty"

    def test_lowercase_prefix_rejected_when_uncleaned(self):
        result = self.validator.validate("cch482913", "user_1")
        assert result.rule_name == "prefix_case"

    def test_wrong_length(self):
        result = self.validator.validate("CCH12", "user_1")

        assert result.rejection == ErrorKind.FORMAT_INVALID
        assert result.rule_name == "length"

    def test_letters_in_digit_section(self):
        result = self.validator.validate("CCH12A456", "user_1")
        assert result.rule_name == "digit_section"

    def test_oversized_raw_message(self):
        result = self.validator.validate("CCH482913", "user_1", raw="x" * 100)

        assert result.rejection == ErrorKind.SECURITY_REJECTED
        assert result.rule_name == "raw_length"

    def test_check_format_leaves_no_record(self):
        assert self.validator.check_format("CCH12").rule_name == "length"
        assert self.validator.check_format("CCH482913") is None
        assert self.validator.get_record("user_1") is None


class TestReplay:
    """Resubmission of the last accepted code."""

    def setup_method(self):
        self.clock = FakeClock()
        self.validator = CodeValidator(clock=self.clock)

    def test_same_code_twice_is_rejected(self):
        first = self.validator.validate("CCH482913", "user_1")
        second = self.validator.validate("CCH482913", "user_1")

        assert first.ok
        assert not second.ok
        assert second.rejection == ErrorKind.SECURITY_REJECTED
        assert second.rule_name == "replay"

    def test_other_user_may_submit_same_code(self):
        self.validator.validate("CCH482913", "user_1")
        assert self.validator.validate("CCH482913", "user_2").ok

    def test_release_allows_retry(self):
        self.validator.validate("CCH482913", "user_1")
        self.validator.release("user_1", "CCH482913")

        assert self.validator.validate("CCH482913", "user_1").ok


class TestRateLimiting:
    """Attempt counting, lockout and expiry."""

    def setup_method(self):
        self.clock = FakeClock()
        self.validator = CodeValidator(clock=self.clock)

    def lock(self, user_id="user_1"):
        results = [self.validator.validate("CCH12", user_id) for _ in range(3)]
        return results[-1]

    def test_threshold_submission_reports_lockout(self):
        last = self.lock()

        assert last.locked_out
        assert last.rejection == ErrorKind.FORMAT_INVALID
        assert last.remaining_minutes == 15
        assert "15 minutes" in last.message

    def test_next_submission_is_rate_limited_even_if_valid(self):
        self.lock()
        result = self.validator.validate("CCH482913", "user_1")

        assert result.rejection == ErrorKind.RATE_LIMITED
        assert result.is_rate_limited
        assert result.remaining_minutes > 0

    def test_lockout_does_not_count_attempts(self):
        self.lock()
        before = self.validator.get_record("user_1").attempts
        self.validator.validate("CCH12", "user_1")

        assert self.validator.get_record("user_1").attempts == before

    def test_remaining_minutes_counts_down(self):
        self.lock()
        self.clock.advance(minutes=10, seconds=30)

        assert self.validator.check_lockout("user_1").remaining_minutes == 5

    def test_lockout_expires(self):
        self.lock()
        self.clock.advance(minutes=16)

        assert not self.validator.is_locked("user_1")
        assert self.validator.validate("CCH482913", "user_1").ok

    def test_expired_lockout_keeps_replay_guard(self):
        self.validator.validate("CCH482913", "user_1")
        self.lock()
        self.clock.advance(minutes=16)

        result = self.validator.validate("CCH482913", "user_1")
        assert result.rejection == ErrorKind.SECURITY_REJECTED

    def test_security_rejections_count_toward_lockout(self):
        self.validator.validate("CCH482913", "user_1")
        for _ in range(3):
            result = self.validator.validate("CCH482913", "user_1")

        assert result.locked_out

    def test_window_resets_after_idle(self):
        self.validator.validate("CCH12", "user_1")
        self.validator.validate("CCH12", "user_1")
        self.clock.advance(minutes=6)
        result = self.validator.validate("CCH12", "user_1")

        assert result.attempts == 1
        assert not result.locked_out

    def test_success_clears_attempts(self):
        self.validator.validate("CCH12", "user_1")
        self.validator.validate("CCH12", "user_1")
        self.validator.validate("CCH482913", "user_1")

        assert self.validator.get_record("user_1").attempts == 0

    def test_users_are_independent(self):
        self.lock("user_1")
        assert not self.validator.is_locked("user_2")

    def test_custom_threshold(self):
        validator = CodeValidator(max_attempts=5, lockout=timedelta(minutes=1), clock=self.clock)
        for _ in range(4):
            validator.validate("CCH12", "user_1")

        assert not validator.is_locked("user_1")
        assert validator.validate("CCH12", "user_1").remaining_minutes == 1


class TestSuspiciousPatterns:
    """Denylisted digit patterns double the penalty."""

    def setup_method(self):
        self.clock = FakeClock()
        self.validator = CodeValidator(clock=self.clock)

    @pytest.mark.parametrize("digits", ["111111", "000000", "123456", "987654"])
    def test_denylist(self, digits):
        assert is_suspicious_digits(digits)

    @pytest.mark.parametrize("digits", ["482913", "112233", "135790"])
    def test_ordinary_digits(self, digits):
        assert not is_suspicious_digits(digits)

    def test_suspicious_rejection_counts_double(self):
        result = self.validator.validate("111111", "user_1")

        assert result.suspicious
        assert result.attempts == 2

    def test_suspicious_reaches_lockout_sooner(self):
        self.validator.validate("111111", "user_1")
        result = self.validator.validate("111111", "user_1")
        assert result.locked_out

        ordinary = CodeValidator(clock=self.clock)
        ordinary.validate("482913", "user_1")
        assert not ordinary.validate("482913", "user_1").locked_out

    def test_valid_suspicious_code_is_accepted(self):
        result = self.validator.validate("CCH111111", "user_1")

        assert result.ok
        assert result.suspicious


class TestIdleSweep:
    """Garbage collection of idle records."""

    def setup_method(self):
        self.clock = FakeClock()
        self.validator = CodeValidator(clock=self.clock)

    def test_idle_record_removed(self):
        self.validator.validate("CCH12", "user_1")
        self.clock.advance(minutes=61)

        assert self.validator.sweep_idle() == 1
        assert self.validator.get_record("user_1") is None

    def test_sweep_is_idempotent(self):
        self.validator.validate("CCH12", "user_1")
        self.clock.advance(minutes=61)
        self.validator.sweep_idle()

        assert self.validator.sweep_idle() == 0

    def test_recent_record_kept(self):
        self.validator.validate("CCH12", "user_1")
        self.clock.advance(minutes=30)

        assert self.validator.sweep_idle() == 0

    def test_locked_record_kept(self):
        for _ in range(3):
            self.validator.validate("CCH12", "user_1")
        self.clock.advance(minutes=10)

        assert self.validator.sweep_idle() == 0
        assert self.validator.is_locked("user_1")

    def test_sweep_clears_replay_guard(self):
        self.validator.validate("CCH482913", "user_1")
        self.clock.advance(minutes=61)
        self.validator.sweep_idle()

        assert self.validator.validate("CCH482913", "user_1").ok

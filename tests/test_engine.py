"""End-to-end tests for the dialogue engine."""

import asyncio

import pytest

from cchub.codes import CodeExtractor
from cchub.config import BotSettings
from cchub.engine import DialogueEngine
from cchub.errors import MalformedMessageError
from cchub.flows.fixtures import DEMO_BILLERS
from cchub.flows.messages import (
    BILL_IN_PROGRESS,
    GENERIC_APOLOGY,
    MAIN_MENU_TEXT,
    TOO_MANY_RETRIES,
    UPSTREAM_UNAVAILABLE,
)
from cchub.integrations import ResolutionStatus, StaticCodeResolver
from cchub.intents import IntentClassifier, KEYWORD_SHORTCUTS, build_intent_rules
from cchub.intents.rules import KeywordShortcutRule
from cchub.sessions import FlowState

from helpers import ExplodingResolver, FakeClock, FixedResolver, RecordingSender


USER = "263771234567"


def make_engine(resolver=None, sender=None, clock=None, **settings):
    return DialogueEngine(
        settings=BotSettings(**settings),
        resolver=resolver or StaticCodeResolver(DEMO_BILLERS),
        sender=sender or RecordingSender(),
        clock=clock or FakeClock(),
    )


class TestElectricityScenario:
    """Menu → meter → amount → wallet → token."""

    def setup_method(self):
        self.clock = FakeClock()
        self.sender = RecordingSender()
        self.engine = make_engine(sender=self.sender, clock=self.clock)

    async def say(self, text):
        replies = await self.engine.handle_message(USER, text)
        return "\n".join(replies)

    @pytest.mark.asyncio
    async def test_full_purchase(self):
        assert "Welcome to CCHub" in await self.say("hi")
        assert "meter number" in await self.say("2")

        verified = await self.say("12345678901")
        assert "T. Moyo" in verified
        assert "Avondale, Harare" in verified

        summary = await self.say("10")
        assert "$10.50" in summary

        receipt = await self.say("1")
        assert "Token:" in receipt
        assert "Reference: ZESA" in receipt
        assert self.engine.sessions.get_active(USER) is None

        assert await self.say("7") == MAIN_MENU_TEXT

    @pytest.mark.asyncio
    async def test_replies_are_sent_in_order(self):
        replies = await self.engine.handle_message(USER, "hi")
        assert self.sender.sent == [(USER, reply) for reply in replies]

    @pytest.mark.asyncio
    async def test_meter_number_without_session_starts_flow(self):
        assert "Meter verified" in await self.say("12345678901")
        assert self.engine.sessions.get_active(USER).flow == FlowState.ZESA_AMOUNT_ENTRY

    @pytest.mark.asyncio
    async def test_retry_limit_returns_to_menu(self):
        await self.say("zesa")
        await self.say("abc")
        await self.say("abc")
        final = await self.say("abc")

        assert TOO_MANY_RETRIES in final
        assert MAIN_MENU_TEXT in final
        assert self.engine.sessions.get_active(USER).flow == FlowState.MAIN_MENU

    @pytest.mark.asyncio
    async def test_session_expiry(self):
        await self.say("zesa")
        self.clock.advance(minutes=11)

        assert await self.say("10") == MAIN_MENU_TEXT

    @pytest.mark.asyncio
    async def test_reset_mid_flow(self):
        await self.say("zesa")
        await self.say("12345678901")

        assert await self.say("menu") == MAIN_MENU_TEXT
        assert self.engine.sessions.get_active(USER).flow == FlowState.MAIN_MENU


class TestLockoutScenario:
    """Repeated malformed codes lock PayCode entry."""

    def setup_method(self):
        self.clock = FakeClock()
        self.engine = make_engine(clock=self.clock)

    @pytest.mark.asyncio
    async def test_fourth_submission_locked(self):
        for _ in range(3):
            await self.engine.handle_message(USER, "CCH12")

        replies = await self.engine.handle_message(USER, "CCH234567")

        assert "try again in 15 minutes" in replies[0]
        assert self.engine.sessions.get_active(USER) is None

    @pytest.mark.asyncio
    async def test_reset_still_works_while_locked(self):
        for _ in range(3):
            await self.engine.handle_message(USER, "CCH12")

        assert await self.engine.handle_message(USER, "hi") == [MAIN_MENU_TEXT]

    @pytest.mark.asyncio
    async def test_lockout_suppresses_menu_input(self):
        for _ in range(3):
            await self.engine.handle_message(USER, "CCH12")
        await self.engine.handle_message(USER, "hi")

        replies = await self.engine.handle_message(USER, "1")
        assert "locked" in replies[0]

    @pytest.mark.asyncio
    async def test_unlocks_after_expiry(self):
        for _ in range(3):
            await self.engine.handle_message(USER, "CCH12")
        self.clock.advance(minutes=15, seconds=1)

        replies = await self.engine.handle_message(USER, "CCH234567")
        assert "Payment detected" in replies[0]


class TestRouting:
    """Precedence as seen through the engine."""

    def setup_method(self):
        self.engine = make_engine()

    @pytest.mark.asyncio
    async def test_code_redeemed_from_unrelated_flow(self):
        await self.engine.handle_message(USER, "zesa")
        replies = await self.engine.handle_message(USER, "Here is my code: CCH234567")

        assert "City of Harare" in replies[0]
        assert self.engine.sessions.get_active(USER).flow == FlowState.BILL_AMOUNT_ENTRY

    @pytest.mark.asyncio
    async def test_rejected_code_keeps_current_flow(self):
        await self.engine.handle_message(USER, "zesa")
        await self.engine.handle_message(USER, "CCH12")

        assert self.engine.sessions.get_active(USER).flow == FlowState.METER_ENTRY

    @pytest.mark.asyncio
    async def test_bare_code_gets_suggestion(self):
        replies = await self.engine.handle_message(USER, "482913")
        assert "CCH482913" in replies[0]

    @pytest.mark.asyncio
    async def test_help_shortcut(self):
        replies = await self.engine.handle_message(USER, "help")
        assert "Help Center" in replies[0]

    @pytest.mark.asyncio
    async def test_bill_flow_through_menu(self):
        await self.engine.handle_message(USER, "hi")
        await self.engine.handle_message(USER, "1")
        await self.engine.handle_message(USER, "3")
        await self.engine.handle_message(USER, "CCH345678")
        await self.engine.handle_message(USER, "200")
        replies = await self.engine.handle_message(USER, "1")

        assert "Payment Successful" in replies[0]
        assert "First Mutual Life" in replies[0]
        assert self.engine.sessions.get_active(USER) is None


class AnytimeShortcutRule(KeywordShortcutRule):
    """Product keywords start a flow even mid-conversation."""

    def matches(self, context):
        return context.normalized in KEYWORD_SHORTCUTS


class TestBillProtection:
    """A bill payment in progress is not replaced by another product."""

    def setup_method(self):
        extractor = CodeExtractor()
        rules = build_intent_rules(extractor)
        rules.insert(1, AnytimeShortcutRule())
        self.engine = DialogueEngine(
            settings=BotSettings(),
            extractor=extractor,
            classifier=IntentClassifier(extractor, rules=rules),
            resolver=StaticCodeResolver(DEMO_BILLERS),
            clock=FakeClock(),
        )

    @pytest.mark.asyncio
    async def test_other_product_refused_during_bill(self):
        await self.engine.handle_message(USER, "CCH234567")

        assert await self.engine.handle_message(USER, "zesa") == [BILL_IN_PROGRESS]
        session = self.engine.sessions.get_active(USER)
        assert session.flow == FlowState.BILL_AMOUNT_ENTRY
        assert session.fields.pay_code == "CCH234567"

    @pytest.mark.asyncio
    async def test_reset_then_other_product(self):
        await self.engine.handle_message(USER, "CCH234567")
        await self.engine.handle_message(USER, "hi")

        await self.engine.handle_message(USER, "zesa")
        assert self.engine.sessions.get_active(USER).flow == FlowState.METER_ENTRY


class TestFailureHandling:
    """Errors become messages; transport problems never roll back state."""

    @pytest.mark.asyncio
    async def test_malformed_message_raises(self):
        engine = make_engine()
        with pytest.raises(MalformedMessageError):
            await engine.handle_message(USER, None)

    @pytest.mark.asyncio
    async def test_unexpected_error_gets_apology(self):
        engine = make_engine(resolver=ExplodingResolver())
        assert await engine.handle_message(USER, "CCH234567") == [GENERIC_APOLOGY]

    @pytest.mark.asyncio
    async def test_upstream_timeout_is_retryable(self):
        engine = make_engine(resolver=FixedResolver(ResolutionStatus.TIMEOUT))

        assert await engine.handle_message(USER, "CCH234567") == [UPSTREAM_UNAVAILABLE]
        assert await engine.handle_message(USER, "CCH234567") == [UPSTREAM_UNAVAILABLE]

    @pytest.mark.asyncio
    async def test_send_failure_keeps_state(self):
        sender = RecordingSender(succeed=False)
        engine = make_engine(sender=sender)

        await engine.handle_message(USER, "zesa")

        assert len(sender.sent) == 1
        assert engine.sessions.get_active(USER).flow == FlowState.METER_ENTRY


class TestLifecycle:
    """Background sweeps."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        engine = make_engine()

        await engine.start()
        await engine.start()
        assert engine.running
        assert len(engine._tasks) == 2

        await engine.stop()
        assert not engine.running

    @pytest.mark.asyncio
    async def test_sweep_removes_expired_sessions(self):
        clock = FakeClock()
        engine = make_engine(clock=clock, session_sweep_interval_seconds=0.01)
        await engine.handle_message(USER, "zesa")
        clock.advance(minutes=11)

        await engine.start()
        try:
            await asyncio.sleep(0.05)
            assert len(engine.sessions.store) == 0
        finally:
            await engine.stop()

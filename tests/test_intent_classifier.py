"""Tests for intent classification precedence."""

import pytest

from cchub.intents import IntentClassifier, IntentType, MessageContext, Shortcut
from cchub.sessions import FlowState, Session


def context(text, flow=None, locked=False):
    session = Session(user_id="u1", flow=flow) if flow else None
    return MessageContext(user_id="u1", text=text, session=session, locked=locked)


class TestRuleTable:
    """The precedence is an explicit, ordered table."""

    def test_rule_order(self):
        classifier = IntentClassifier()
        assert classifier.rule_names == [
            "reset_keyword",
            "active_lockout",
            "pay_code",
            "keyword_shortcut",
            "menu_choice",
            "amount_entry",
            "step_input",
            "format_error",
            "bare_code",
            "meter_number",
            "main_menu",
        ]


class TestPrecedence:
    """Which rule wins for representative messages."""

    def setup_method(self):
        self.classifier = IntentClassifier()

    def classify(self, text, flow=None, locked=False):
        return self.classifier.classify(context(text, flow, locked))

    @pytest.mark.parametrize("text", ["hi", "HI!", " Hello ", "menu", "start"])
    def test_reset_keywords(self, text):
        assert self.classify(text, FlowState.ZESA_AMOUNT_ENTRY).intent == IntentType.RESET

    def test_reset_beats_lockout(self):
        assert self.classify("hi", locked=True).intent == IntentType.RESET

    def test_exact_reset_ignores_embedded_keyword(self):
        assert self.classify("hi there").intent == IntentType.MAIN_MENU

    def test_word_reset_matches_embedded_keyword(self):
        classifier = IntentClassifier(reset_match="word")
        result = classifier.classify(context("hi there"))
        assert result.intent == IntentType.RESET

    def test_lockout_beats_pay_code(self):
        assert self.classify("CCH482913", locked=True).intent == IntentType.LOCKED_OUT

    def test_pay_code_beats_unrelated_flow(self):
        result = self.classify("CCH482913", FlowState.METER_ENTRY)
        assert result.intent == IntentType.PAY_CODE

    def test_partial_code_routes_to_pay_code(self):
        assert self.classify("CCH12").intent == IntentType.PAY_CODE

    @pytest.mark.parametrize(
        "text,shortcut",
        [
            ("pay", Shortcut.BILL),
            ("zesa", Shortcut.ZESA),
            ("Electricity", Shortcut.ZESA),
            ("buy airtime", Shortcut.AIRTIME),
            ("help", Shortcut.HELP),
        ],
    )
    def test_shortcuts_without_session(self, text, shortcut):
        result = self.classify(text)
        assert result.intent == IntentType.SHORTCUT
        assert result.shortcut == shortcut

    def test_shortcut_from_main_menu(self):
        assert self.classify("airtime", FlowState.MAIN_MENU).intent == IntentType.SHORTCUT

    def test_shortcut_ignored_mid_flow(self):
        assert self.classify("zesa", FlowState.ZESA_AMOUNT_ENTRY).intent == IntentType.FORMAT_ERROR

    def test_menu_choice(self):
        assert self.classify("2", FlowState.MAIN_MENU).intent == IntentType.MENU_CHOICE

    @pytest.mark.parametrize("text", ["10", "$10.50", "1,000"])
    def test_amount_entry(self, text):
        assert self.classify(text, FlowState.ZESA_AMOUNT_ENTRY).intent == IntentType.AMOUNT_ENTRY

    def test_text_step(self):
        assert self.classify("12345678901", FlowState.METER_ENTRY).intent == IntentType.STEP_INPUT

    def test_bare_digits_in_code_step_go_to_step(self):
        assert self.classify("482913", FlowState.BILL_WAITING_FOR_CODE).intent == IntentType.STEP_INPUT

    def test_format_error(self):
        assert self.classify("maybe", FlowState.BILL_CONFIRMATION).intent == IntentType.FORMAT_ERROR

    def test_bare_code_without_session(self):
        assert self.classify("482913").intent == IntentType.BARE_CODE

    def test_meter_number_without_session(self):
        assert self.classify("12345678901").intent == IntentType.METER_NUMBER

    @pytest.mark.parametrize("text", ["5", "blah", "1"])
    def test_fallback_to_main_menu(self, text):
        assert self.classify(text).intent == IntentType.MAIN_MENU

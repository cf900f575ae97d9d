"""Ordered routing rules.

Earlier rules win. The order encodes two guarantees:
- a PayCode is honored even from inside an unrelated flow (pay_code sits
  above every flow-specific rule), and
- an active lockout suppresses everything except the reset keyword
  (active_lockout sits above pay_code).
"""

import re
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from cchub.codes.extractor import CodeExtractor
from cchub.intents.models import Classification, IntentType, MessageContext, Shortcut
from cchub.parsing import parse_amount, parse_choice
from cchub.sessions.models import FlowState, InputKind


KEYWORD_SHORTCUTS: Dict[str, Shortcut] = {
    "pay": Shortcut.BILL,
    "bill": Shortcut.BILL,
    "pay bill": Shortcut.BILL,
    "paybill": Shortcut.BILL,
    "zesa": Shortcut.ZESA,
    "buy zesa": Shortcut.ZESA,
    "electricity": Shortcut.ZESA,
    "tokens": Shortcut.ZESA,
    "airtime": Shortcut.AIRTIME,
    "buy airtime": Shortcut.AIRTIME,
    "help": Shortcut.HELP,
}

METER_NUMBER_PATTERN = re.compile(r"\d{10,12}")


class IntentRule(ABC):
    """Abstract base class for routing rules."""

    def __init__(self, name: str, intent: IntentType, description: str):
        """
        Initialize a routing rule.

        Args:
            name: Unique rule identifier
            intent: Intent produced when the rule matches
            description: Human-readable description
        """
        self.name = name
        self.intent = intent
        self.description = description

    @abstractmethod
    def matches(self, context: MessageContext) -> bool:
        pass

    def classify(self, context: MessageContext) -> Optional[Classification]:
        """Classification if the rule matches, else None."""
        if self.matches(context):
            return Classification(intent=self.intent, rule_name=self.name)
        return None


class ResetKeywordRule(IntentRule):
    """hi / hello / menu always return to the main menu."""

    def __init__(self, keywords: Iterable[str], match: str = "exact"):
        super().__init__(
            name="reset_keyword",
            intent=IntentType.RESET,
            description="Reset keyword overrides any flow",
        )
        self.keywords = {k.lower() for k in keywords}
        self.match = match
        self._word_pattern = re.compile(
            r"\b(" + "|".join(re.escape(k) for k in sorted(self.keywords)) + r")\b"
        )

    def matches(self, context):
        text = context.normalized
        if text in self.keywords:
            return True
        if self.match == "word":
            return bool(self._word_pattern.search(text))
        return False


class ActiveLockoutRule(IntentRule):
    """A locked-out user only gets the lockout notice."""

    def __init__(self):
        super().__init__(
            name="active_lockout",
            intent=IntentType.LOCKED_OUT,
            description="PayCode lockout suppresses everything but reset",
        )

    def matches(self, context):
        return context.locked


class PayCodeRule(IntentRule):
    """Code-shaped input goes to redemption regardless of the active flow."""

    def __init__(self, extractor: CodeExtractor):
        super().__init__(
            name="pay_code",
            intent=IntentType.PAY_CODE,
            description="PayCodes are redeemable from any flow",
        )
        self.extractor = extractor

    def matches(self, context):
        return self.extractor.looks_like_code(context.text)


class KeywordShortcutRule(IntentRule):
    """Product keywords start a flow when no flow is in progress."""

    def __init__(self):
        super().__init__(
            name="keyword_shortcut",
            intent=IntentType.SHORTCUT,
            description="Product keyword with no flow in progress",
        )

    def matches(self, context):
        in_flow = context.session is not None and context.session.flow != FlowState.MAIN_MENU
        return not in_flow and context.normalized in KEYWORD_SHORTCUTS

    def classify(self, context):
        if not self.matches(context):
            return None
        return Classification(
            intent=self.intent,
            rule_name=self.name,
            shortcut=KEYWORD_SHORTCUTS[context.normalized],
        )


class MenuChoiceRule(IntentRule):
    """Numeric option while a menu step is waiting."""

    def __init__(self):
        super().__init__(
            name="menu_choice",
            intent=IntentType.MENU_CHOICE,
            description="Numeric choice for a menu-style step",
        )

    def matches(self, context):
        return (
            context.session is not None
            and context.session.flow.expects == InputKind.CHOICE
            and parse_choice(context.text) is not None
        )


class AmountEntryRule(IntentRule):
    """Amount while an amount step is waiting."""

    def __init__(self):
        super().__init__(
            name="amount_entry",
            intent=IntentType.AMOUNT_ENTRY,
            description="Numeric amount for an amount step",
        )

    def matches(self, context):
        return (
            context.session is not None
            and context.session.flow.expects == InputKind.AMOUNT
            and parse_amount(context.text) is not None
        )


class StepInputRule(IntentRule):
    """Free-text steps validate their own input."""

    def __init__(self):
        super().__init__(
            name="step_input",
            intent=IntentType.STEP_INPUT,
            description="Meter number, phone number or PayCode step",
        )

    def matches(self, context):
        return context.session is not None and context.session.flow.expects == InputKind.TEXT


class FormatErrorRule(IntentRule):
    """Session exists but the input is not what the step expects."""

    def __init__(self):
        super().__init__(
            name="format_error",
            intent=IntentType.FORMAT_ERROR,
            description="Canned per-flow format error",
        )

    def matches(self, context):
        return context.session is not None


class BareCodeRule(IntentRule):
    """Exactly N digits with no session: a PayCode missing its prefix."""

    def __init__(self, digits: int = 6):
        super().__init__(
            name="bare_code",
            intent=IntentType.BARE_CODE,
            description="Prefix-less PayCode digits",
        )
        self.pattern = re.compile(rf"\d{{{digits}}}")

    def matches(self, context):
        return context.session is None and bool(self.pattern.fullmatch(context.normalized))


class MeterNumberRule(IntentRule):
    """Long digit run with no session: probably a meter number."""

    def __init__(self):
        super().__init__(
            name="meter_number",
            intent=IntentType.METER_NUMBER,
            description="Digit run resembling a ZESA meter number",
        )

    def matches(self, context):
        return context.session is None and bool(METER_NUMBER_PATTERN.fullmatch(context.normalized))


class MainMenuRule(IntentRule):
    """Catch-all."""

    def __init__(self):
        super().__init__(
            name="main_menu",
            intent=IntentType.MAIN_MENU,
            description="Fallback to the main menu",
        )

    def matches(self, context):
        return True


def build_intent_rules(
    extractor: CodeExtractor,
    reset_keywords: Iterable[str] = ("hi", "hello", "menu", "start"),
    reset_match: str = "exact",
) -> List[IntentRule]:
    """The routing table, in precedence order."""
    return [
        ResetKeywordRule(reset_keywords, reset_match),
        ActiveLockoutRule(),
        PayCodeRule(extractor),
        KeywordShortcutRule(),
        MenuChoiceRule(),
        AmountEntryRule(),
        StepInputRule(),
        FormatErrorRule(),
        BareCodeRule(extractor.digits),
        MeterNumberRule(),
        MainMenuRule(),
    ]

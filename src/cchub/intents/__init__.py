"""Intent module - priority-ordered routing of inbound messages."""

from cchub.intents.models import Classification, IntentType, MessageContext, Shortcut
from cchub.intents.rules import IntentRule, KEYWORD_SHORTCUTS, build_intent_rules
from cchub.intents.classifier import IntentClassifier

__all__ = [
    "Classification",
    "IntentType",
    "MessageContext",
    "Shortcut",
    "IntentRule",
    "KEYWORD_SHORTCUTS",
    "build_intent_rules",
    "IntentClassifier",
]

"""Intent Classifier - picks the handler for one inbound message."""

import logging
from typing import List, Optional

from cchub.codes.extractor import CodeExtractor
from cchub.intents.models import Classification, IntentType, MessageContext
from cchub.intents.rules import IntentRule, build_intent_rules


logger = logging.getLogger(__name__)


class IntentClassifier:
    """
    Deterministic, priority-ordered message router.

    Rules are evaluated top to bottom and the first match short-circuits the
    rest:

    reset_keyword → active_lockout → pay_code → keyword_shortcut →
    menu_choice → amount_entry → step_input → format_error →
    bare_code → meter_number → main_menu
    """

    def __init__(
        self,
        extractor: Optional[CodeExtractor] = None,
        rules: Optional[List[IntentRule]] = None,
        reset_keywords=("hi", "hello", "menu", "start"),
        reset_match: str = "exact",
    ):
        self.extractor = extractor or CodeExtractor()
        self.rules: List[IntentRule] = rules or build_intent_rules(
            self.extractor, reset_keywords, reset_match
        )
        logger.info(f"Intent Classifier initialized with {len(self.rules)} rules")

    @property
    def rule_names(self) -> List[str]:
        return [rule.name for rule in self.rules]

    def classify(self, context: MessageContext) -> Classification:
        """Return the classification from the first matching rule."""
        for rule in self.rules:
            result = rule.classify(context)
            if result is not None:
                flow = context.session.flow.value if context.session else "NONE"
                logger.debug(f"Rule '{rule.name}' matched in state {flow}")
                return result

        # MainMenuRule always matches; only reachable with a custom rule list
        return Classification(intent=IntentType.MAIN_MENU, rule_name="default")

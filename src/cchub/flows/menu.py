"""Main menu."""

import logging
from typing import Dict, Optional

from cchub.flows.base import FlowHandler, StepResult
from cchub.flows.messages import HELP_TEXT, MAIN_MENU_TEXT
from cchub.parsing import parse_choice
from cchub.sessions.models import FlowFamily, FlowState, Session


logger = logging.getLogger(__name__)

HELP_OPTION = 4


class MenuFlow(FlowHandler):
    """1 Pay Bill, 2 Buy ZESA, 3 Buy Airtime, 4 Help."""

    family = FlowFamily.MENU

    def __init__(self, products: Dict[int, FlowHandler], max_retries: int = 3):
        super().__init__(max_retries)
        self.products = products

    def start(self, user_id: str) -> StepResult:
        return StepResult(
            replies=[MAIN_MENU_TEXT],
            session=self.begin(user_id, FlowState.MAIN_MENU),
        )

    def help(self, user_id: str) -> StepResult:
        return StepResult(
            replies=[HELP_TEXT],
            session=self.begin(user_id, FlowState.MAIN_MENU),
        )

    async def step(self, session: Session, text: str) -> StepResult:
        choice = parse_choice(text)
        return self.select(session, choice)

    def select(self, session: Session, choice: Optional[int]) -> StepResult:
        if choice == HELP_OPTION:
            return self.help(session.user_id)

        handler = self.products.get(choice)
        if handler is None:
            return self.retry(session)

        logger.info(f"Main menu option {choice} selected")
        return handler.start(session.user_id)

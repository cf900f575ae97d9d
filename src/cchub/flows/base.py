"""Flow handler base class and step result."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, Field

from cchub.flows.messages import TOO_MANY_RETRIES, flow_error_message
from cchub.sessions.models import FlowFamily, FlowState, Session, SessionFields


logger = logging.getLogger(__name__)


class StepResult(BaseModel):
    """
    Outcome of one flow step.

    ``session`` is the state to persist; None ends the conversation. With
    ``show_menu`` the engine appends the main menu and opens a menu session.
    """

    replies: List[str] = Field(default_factory=list, description="Outbound messages, in order")
    session: Optional[Session] = Field(default=None, description="Next state, or None to clear")
    show_menu: bool = Field(default=False, description="Return the user to the main menu")


class FlowHandler(ABC):
    """
    Abstract base class for a linear purchase flow.

    Steps are pure with respect to storage: they take the current session
    and return the next one. The engine persists the result.
    """

    family: FlowFamily

    def __init__(self, max_retries: int = 3):
        self.max_retries = max_retries

    def handles(self, flow: FlowState) -> bool:
        return flow.family == self.family

    @abstractmethod
    def start(self, user_id: str) -> StepResult:
        """Open the flow at its first step."""
        pass

    @abstractmethod
    async def step(self, session: Session, text: str) -> StepResult:
        """Advance the flow with one inbound message."""
        pass

    def begin(self, user_id: str, flow: FlowState, **fields) -> Session:
        return Session(user_id=user_id, flow=flow, fields=SessionFields(**fields))

    def retry(self, session: Session, message: Optional[str] = None) -> StepResult:
        """
        Re-prompt after invalid input.

        The retry counter lives in the session; reaching ``max_retries``
        drops the flow and returns the user to the main menu.
        """
        updated = session.with_retry()
        if updated.fields.retries >= self.max_retries:
            logger.info(
                f"Retry limit reached in {session.flow.value} "
                f"({updated.fields.retries}/{self.max_retries})"
            )
            return StepResult(replies=[TOO_MANY_RETRIES], session=None, show_menu=True)

        return StepResult(replies=[message or flow_error_message(session.flow)], session=updated)

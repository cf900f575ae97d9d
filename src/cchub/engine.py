"""
Dialogue Engine

Orchestrates one inbound message end to end:

message → classify → dispatch to handler → persist state → send replies

State is persisted before anything is sent, so a failed delivery never
rolls back a transition. The engine also owns the periodic cleanup of
expired sessions and idle rate-limit records.
"""

import asyncio
import logging
from datetime import datetime, timedelta, UTC
from typing import Awaitable, Callable, Dict, List, Optional

from cchub.codes.extractor import CodeExtractor
from cchub.codes.validator import CodeValidator
from cchub.config import BotSettings
from cchub.errors import FlowError, MalformedMessageError
from cchub.flows.airtime import AirtimeFlow
from cchub.flows.base import FlowHandler, StepResult
from cchub.flows.bill import BillFlow
from cchub.flows.fixtures import CATEGORY_ENDPOINTS, DEMO_BILLERS
from cchub.flows.menu import MenuFlow
from cchub.flows.messages import BILL_IN_PROGRESS, GENERIC_APOLOGY
from cchub.flows.zesa import ZesaFlow
from cchub.integrations.resolver import BaseCodeResolver, CodeResolver, StaticCodeResolver
from cchub.integrations.whatsapp import MessageSender
from cchub.intents.classifier import IntentClassifier
from cchub.intents.models import Classification, IntentType, MessageContext, Shortcut
from cchub.payments.simulator import PaymentSimulator
from cchub.sessions.manager import SessionConflictError, SessionManager
from cchub.sessions.models import FlowState


logger = logging.getLogger(__name__)

Handler = Callable[[MessageContext, Classification], Awaitable[StepResult]]


def build_resolver(settings: BotSettings) -> BaseCodeResolver:
    """HTTP resolver, or the fixture table when resolver_mode is "fixture"."""
    if settings.resolver_mode == "fixture":
        logger.info("Using fixture PayCode resolver")
        return StaticCodeResolver(DEMO_BILLERS)
    return CodeResolver.from_settings(settings, endpoints=CATEGORY_ENDPOINTS)


class DialogueEngine:
    """
    Conversation orchestrator.

    Each intent maps to one handler coroutine. Handlers return a
    StepResult; the engine alone touches the session store.
    """

    def __init__(
        self,
        settings: Optional[BotSettings] = None,
        sessions: Optional[SessionManager] = None,
        validator: Optional[CodeValidator] = None,
        extractor: Optional[CodeExtractor] = None,
        classifier: Optional[IntentClassifier] = None,
        resolver: Optional[BaseCodeResolver] = None,
        sender: Optional[MessageSender] = None,
        simulator: Optional[PaymentSimulator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the engine.

        Args:
            settings: Bot configuration (default: from environment)
            sessions: Session manager
            validator: PayCode validator
            extractor: PayCode extractor
            classifier: Intent classifier
            resolver: PayCode resolver (default: per resolver_mode)
            sender: Outbound sender; None returns replies without sending
            simulator: Payment simulator
            clock: Returns the current UTC time (injectable for tests)
        """
        self.settings = settings or BotSettings()
        s = self.settings
        clock = clock or (lambda: datetime.now(UTC))

        self.extractor = extractor or CodeExtractor(s.code_prefix, s.code_digits)
        self.sessions = sessions or SessionManager(ttl=timedelta(minutes=s.session_ttl_minutes), clock=clock)
        self.validator = validator or CodeValidator.from_settings(s, clock=clock)
        self.classifier = classifier or IntentClassifier(
            self.extractor,
            reset_keywords=s.reset_keywords,
            reset_match=s.reset_match,
        )
        self.resolver = resolver or build_resolver(s)
        self.sender = sender
        self.simulator = simulator or PaymentSimulator(failure_rate=s.payment_failure_rate)

        self.bill = BillFlow(self.extractor, self.validator, self.resolver, self.simulator, s.max_step_retries)
        self.zesa = ZesaFlow(self.simulator, s.max_step_retries)
        self.airtime = AirtimeFlow(self.simulator, s.max_step_retries)
        self.menu = MenuFlow({1: self.bill, 2: self.zesa, 3: self.airtime}, s.max_step_retries)
        self.flows: List[FlowHandler] = [self.menu, self.bill, self.zesa, self.airtime]

        self.handlers: Dict[IntentType, Handler] = {
            IntentType.RESET: self._on_reset,
            IntentType.LOCKED_OUT: self._on_locked_out,
            IntentType.PAY_CODE: self._on_pay_code,
            IntentType.SHORTCUT: self._on_shortcut,
            IntentType.MENU_CHOICE: self._on_flow_input,
            IntentType.AMOUNT_ENTRY: self._on_flow_input,
            IntentType.STEP_INPUT: self._on_flow_input,
            IntentType.FORMAT_ERROR: self._on_format_error,
            IntentType.BARE_CODE: self._on_bare_code,
            IntentType.METER_NUMBER: self._on_meter_number,
            IntentType.MAIN_MENU: self._on_main_menu,
        }

        self._tasks: List[asyncio.Task] = []
        logger.info("Dialogue Engine initialized")

    async def handle_message(self, user_id: str, text: Optional[str]) -> List[str]:
        """
        Process one inbound message and deliver the replies.

        Args:
            user_id: Channel identifier of the sender
            text: Message body

        Returns:
            The replies, in send order

        Raises:
            MalformedMessageError: The event carried no text
        """
        if text is None:
            raise MalformedMessageError(f"Message from {user_id} has no text body")

        session = self.sessions.get_active(user_id)
        context = MessageContext(
            user_id=user_id,
            text=text,
            session=session,
            locked=self.validator.is_locked(user_id),
        )
        classification = self.classifier.classify(context)
        logger.info(
            f"📩 Intent {classification.intent.value} via '{classification.rule_name}' "
            f"(state: {session.flow.value if session else 'NONE'})"
        )

        handler = self.handlers[classification.intent]
        try:
            result = await handler(context, classification)
            replies = self._apply(user_id, result)
        except FlowError as e:
            logger.warning(f"Flow error [{e.kind.value}]")
            replies = [e.message]
        except SessionConflictError as e:
            logger.warning(f"Session conflict: {e}")
            replies = [BILL_IN_PROGRESS]
        except Exception as e:
            logger.exception(f"Unhandled error processing message: {e}")
            replies = [GENERIC_APOLOGY]

        await self._deliver(user_id, replies)
        return replies

    async def start(self) -> None:
        """Start the periodic sweeps. Idempotent."""
        if self._tasks:
            return

        self._tasks = [
            asyncio.create_task(
                self._every(self.settings.session_sweep_interval_seconds, self.sessions.sweep),
                name="session-sweep",
            ),
            asyncio.create_task(
                self._every(self.settings.rate_sweep_interval_seconds, self.validator.sweep_idle),
                name="rate-limit-sweep",
            ),
        ]
        logger.info("Background sweeps started")

    async def stop(self) -> None:
        """Cancel the sweeps and wait for them to finish."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info("Background sweeps stopped")

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    # Handlers

    async def _on_reset(self, context, classification) -> StepResult:
        self.sessions.remove(context.user_id)
        return self.menu.start(context.user_id)

    async def _on_locked_out(self, context, classification) -> StepResult:
        check = self.validator.check_lockout(context.user_id)
        if check is None:
            return self.menu.start(context.user_id)
        return StepResult(replies=[check.message], session=context.session)

    async def _on_pay_code(self, context, classification) -> StepResult:
        return await self.bill.redeem(context.user_id, context.text, context.session)

    async def _on_shortcut(self, context, classification) -> StepResult:
        if classification.shortcut == Shortcut.HELP:
            return self.menu.help(context.user_id)
        starters = {
            Shortcut.BILL: self.bill,
            Shortcut.ZESA: self.zesa,
            Shortcut.AIRTIME: self.airtime,
        }
        return starters[classification.shortcut].start(context.user_id)

    async def _on_flow_input(self, context, classification) -> StepResult:
        session = context.session
        return await self._flow_for(session.flow).step(session, context.text)

    async def _on_format_error(self, context, classification) -> StepResult:
        session = context.session
        return self._flow_for(session.flow).retry(session)

    async def _on_bare_code(self, context, classification) -> StepResult:
        return await self.bill.redeem(context.user_id, context.text, None)

    async def _on_meter_number(self, context, classification) -> StepResult:
        opened = self.zesa.start(context.user_id)
        return await self.zesa.step(opened.session, context.text)

    async def _on_main_menu(self, context, classification) -> StepResult:
        return self.menu.start(context.user_id)

    # Internals

    def _flow_for(self, flow: FlowState) -> FlowHandler:
        for handler in self.flows:
            if handler.handles(flow):
                return handler
        raise LookupError(f"No flow handles {flow.value}")

    def _apply(self, user_id: str, result: StepResult) -> List[str]:
        """Persist a step result and return the replies to send."""
        if result.session is not None:
            self.sessions.save(result.session)
        else:
            self.sessions.remove(user_id)

        replies = list(result.replies)
        if result.show_menu:
            menu = self.menu.start(user_id)
            self.sessions.save(menu.session)
            replies.extend(menu.replies)
        return replies

    async def _deliver(self, user_id: str, replies: List[str]) -> None:
        if self.sender is None:
            return
        for reply in replies:
            if not await self.sender.send(user_id, reply):
                logger.warning("Reply not delivered; session state kept")

    async def _every(self, interval: float, job: Callable[[], int]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                job()
            except Exception as e:
                logger.error(f"Sweep failed: {e}")

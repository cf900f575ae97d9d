"""Shared test doubles."""

from datetime import datetime, timedelta, UTC
from typing import List, Optional, Tuple

from cchub.integrations.resolver import BaseCodeResolver, ResolutionResult, ResolutionStatus
from cchub.integrations.whatsapp import MessageSender


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSender(MessageSender):
    """Keeps every outbound message."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: List[Tuple[str, str]] = []

    async def send(self, user_id: str, text: str) -> bool:
        self.sent.append((user_id, text))
        return self.succeed


class FixedResolver(BaseCodeResolver):
    """Always answers with the same status."""

    def __init__(self, status: ResolutionStatus, message: Optional[str] = None):
        self.status = status
        self.message = message
        self.calls: List[str] = []

    async def resolve(self, code, category=None):
        self.calls.append(code)
        return ResolutionResult(status=self.status, code=code, message=self.message)


class ExplodingResolver(BaseCodeResolver):
    """Raises, to exercise the engine's last-resort handler."""

    async def resolve(self, code, category=None):
        raise RuntimeError("resolver bug")

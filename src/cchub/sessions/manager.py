"""Session Manager - one expiring conversation slot per user."""

import logging
from datetime import datetime, timedelta, UTC
from typing import Callable, Optional

from cchub.sessions.models import FlowFamily, FlowState, Session, SessionFields
from cchub.storage import InMemoryStore, KeyedStore


logger = logging.getLogger(__name__)


# Sessions in these families are not silently replaced by another product's flow
PROTECTED_FAMILIES = {FlowFamily.BILL}


class SessionConflictError(Exception):
    """A protected session is in progress and the new flow may not replace it."""

    def __init__(self, existing: Session, requested: FlowState):
        self.existing = existing
        self.requested = requested
        super().__init__(
            f"Cannot start {requested.value} over protected {existing.flow.value} session"
        )


class SessionManager:
    """
    Per-user conversation sessions with a fixed TTL.

    Invariant: at most one active session per user. The store is keyed by
    user ID, so an upsert replaces whatever was there.

    Note: This is in-memory and resets when the process restarts.
    """

    def __init__(
        self,
        store: Optional[KeyedStore[Session]] = None,
        ttl: timedelta = timedelta(minutes=10),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the session manager.

        Args:
            store: Session store (default: in-memory)
            ttl: Lifetime of a session from its last upsert
            clock: Returns the current UTC time (injectable for tests)
        """
        self.store = store if store is not None else InMemoryStore()
        self.ttl = ttl
        self.clock = clock or (lambda: datetime.now(UTC))

        logger.info(f"Session Manager initialized (ttl={ttl})")

    def upsert(
        self,
        user_id: str,
        flow: FlowState,
        fields: Optional[SessionFields] = None,
        force: bool = False,
    ) -> str:
        """
        Replace the user's session with a new one in the given state.

        Args:
            user_id: Channel identifier
            flow: New conversation state
            fields: Flow payload to carry
            force: Replace even a protected session of another product

        Returns:
            The new session ID

        Raises:
            SessionConflictError: A protected session would be dropped
        """
        now = self.clock()
        session = Session(
            user_id=user_id,
            flow=flow,
            fields=fields or SessionFields(),
            created_at=now,
        )
        return self._store(session, force)

    def save(self, session: Session, force: bool = False) -> str:
        """
        Persist the result of a flow step.

        The session keeps its ID and creation time; only the expiry is
        refreshed.
        """
        return self._store(session, force)

    def get_active(self, user_id: str) -> Optional[Session]:
        """Return the user's non-expired session, sweeping expired ones first."""
        self.sweep()
        return self.store.get(user_id)

    def remove(self, user_id: str) -> bool:
        """Delete the user's session unconditionally."""
        removed = self.store.delete(user_id)
        if removed:
            logger.info("Session cleared")
        return removed

    def sweep(self) -> int:
        """Remove all expired sessions. Idempotent."""
        now = self.clock()
        removed = self.store.sweep(lambda session: session.is_expired(now))
        if removed:
            logger.info(f"🧹 Cleaned up {removed} expired sessions")
        return removed

    @property
    def active_count(self) -> int:
        """Number of stored sessions (useful for monitoring)."""
        return sum(1 for _ in self.store.items())

    def _store(self, session: Session, force: bool) -> str:
        existing = self.get_active(session.user_id)

        if existing and not force and self._is_protected(existing, session.flow):
            logger.warning(
                f"Refused to replace {existing.flow.value} with {session.flow.value}"
            )
            raise SessionConflictError(existing, session.flow)

        stored = session.model_copy(update={"expires_at": self.clock() + self.ttl})
        self.store.put(session.user_id, stored)

        logger.info(
            "State transition: "
            f"{existing.flow.value if existing else 'NONE'} → {session.flow.value} "
            f"[{stored.session_id}]"
        )
        return stored.session_id

    def _is_protected(self, existing: Session, requested: FlowState) -> bool:
        family = existing.flow.family
        return family in PROTECTED_FAMILIES and requested.family != family

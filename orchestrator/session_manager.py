"""Session manager: time-bounded sessions around the live context.

Sessions are stored under ``session:<id>`` with the active id under
``session:active``. Expiry is fixed at creation and evaluated on load;
there is no background timer.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from pydantic import ValidationError

from contracts import ApplicationContext, Session, utc_now
from storage import StorageAdapter
from orchestrator.context_store import ContextStore
from config import settings


logger = logging.getLogger(__name__)

SESSION_PREFIX = "session:"
ACTIVE_SESSION_KEY = "session:active"
SESSION_ID_PREFIX = "grant_session_"


class SessionManager:
    """Creates, restores and expires sessions for one context store.

    Every context change touches the active session, which refreshes its
    updated_at and embedded snapshot but never its expiry.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        context_store: ContextStore,
        ttl_hours: Optional[float] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the session manager.

        Args:
            storage: Repository for session records
            context_store: Store whose context the sessions wrap
            ttl_hours: Session lifetime from creation
            now: Clock returning an aware datetime, injectable for tests
        """
        self.storage = storage
        self.context_store = context_store
        self.ttl = timedelta(hours=ttl_hours or settings.session_ttl_hours)
        self.now = now or utc_now

        self.current_session: Optional[Session] = None
        self._unsubscribe = context_store.subscribe(self._on_context_change)

    def create(self) -> Session:
        """Start a new session around the store's current state and make it active."""
        created = self.now()
        session = Session(
            id=self._new_id(created),
            created_at=created,
            updated_at=created,
            expires_at=created + self.ttl,
            context=self.context_store.get_context(),
            section_progress=self.context_store.get_sections(),
        )
        self._save(session)
        self.storage.set(ACTIVE_SESSION_KEY, session.id)
        self.current_session = session
        logger.info("Created session %s (expires %s)", session.id, session.expires_at.isoformat())
        return session

    def load(self) -> Session:
        """Restore the active session, replacing it when missing or expired.

        Expired sessions are garbage-collected first. When the active one was
        among them, the context store is cleared before a fresh session starts.
        """
        active_id = self.storage.get(ACTIVE_SESSION_KEY)
        removed = self.cleanup_expired()

        session = None
        if isinstance(active_id, str) and active_id not in removed:
            session = self._read(active_id)

        if session is not None:
            self.current_session = session
            return session

        if active_id:
            logger.info("Session %s expired or missing; starting a fresh one", active_id)
            self.current_session = None
            self.storage.remove(ACTIVE_SESSION_KEY)
            self.context_store.clear_context()
        return self.create()

    def touch(self) -> Optional[Session]:
        """Refresh updated_at and the context snapshot of the active session.

        Expired sessions are left as they are; load() replaces them.
        """
        if self.current_session is None or self.is_expired(self.current_session):
            return None
        session = self.current_session.model_copy(update={
            "updated_at": self.now(),
            "context": self.context_store.get_context(),
            "section_progress": self.context_store.get_sections(),
        })
        self._save(session)
        self.current_session = session
        return session

    def is_expired(self, session: Optional[Session] = None) -> bool:
        session = session or self.current_session
        if session is None:
            return True
        return session.is_expired(self.now())

    def activate(self, session_id: str) -> Optional[Session]:
        """Switch to another stored session and restore its snapshot into the store.

        Returns:
            The activated session, or None when it is missing or expired
        """
        session = self._read(session_id)
        if session is None:
            logger.warning("Cannot activate unknown session %s", session_id)
            return None
        if self.is_expired(session):
            logger.warning("Cannot activate expired session %s", session_id)
            self.storage.remove(self._key(session_id))
            return None

        self.current_session = session
        self.storage.set(ACTIVE_SESSION_KEY, session.id)
        self.context_store.restore(session.context, session.section_progress)
        return self.current_session

    def list_sessions(self) -> List[Session]:
        """All readable stored sessions, newest first."""
        sessions = []
        for key in self._session_keys():
            session = self._read(key[len(SESSION_PREFIX):])
            if session is not None:
                sessions.append(session)
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    def cleanup_expired(self) -> List[str]:
        """Delete expired and unreadable sessions.

        Returns:
            Ids of the removed sessions
        """
        now = self.now()
        removed = []
        for key in self._session_keys():
            session_id = key[len(SESSION_PREFIX):]
            session = self._read(session_id)
            if session is None or session.is_expired(now):
                self.storage.remove(key)
                removed.append(session_id)
        if removed:
            logger.info("Removed %d expired session(s)", len(removed))
        return removed

    def record_invalid_attempt(self) -> int:
        """Count a message that yielded only rejected values."""
        if self.current_session is None:
            return 0
        metadata = self.current_session.metadata.model_copy(
            update={"invalid_attempts": self.current_session.metadata.invalid_attempts + 1}
        )
        self.current_session = self.current_session.model_copy(update={"metadata": metadata})
        self._save(self.current_session)
        return metadata.invalid_attempts

    def reset(self) -> Session:
        """Discard the active session and its context, then start a new one."""
        if self.current_session is not None:
            self.storage.remove(self._key(self.current_session.id))
            self.current_session = None
        self.storage.remove(ACTIVE_SESSION_KEY)
        self.context_store.clear_context()
        return self.create()

    def close(self) -> None:
        """Stop following context changes."""
        self._unsubscribe()

    def _on_context_change(self, context: ApplicationContext) -> None:
        self.touch()

    def _session_keys(self) -> List[str]:
        return [k for k in self.storage.keys(SESSION_PREFIX) if k != ACTIVE_SESSION_KEY]

    def _read(self, session_id: str) -> Optional[Session]:
        raw = self.storage.get(self._key(session_id))
        if raw is None:
            return None
        try:
            return Session.model_validate(raw)
        except ValidationError as e:
            logger.warning("Ignoring unreadable session %s: %s", session_id, e)
            return None

    def _save(self, session: Session) -> None:
        self.storage.set(self._key(session.id), session.model_dump(mode="json", by_alias=True))

    def _key(self, session_id: str) -> str:
        return f"{SESSION_PREFIX}{session_id}"

    def _new_id(self, created: datetime) -> str:
        return f"{SESSION_ID_PREFIX}{int(created.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}"

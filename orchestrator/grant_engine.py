"""Grant Engine - facade wiring extraction, context, sessions and drafts together.

For each user message the engine:
1. Appends it to the transcript
2. Extracts candidate field values
3. Merges accepted values into the context store
4. Autosaves once enough accepted changes have accumulated
5. Reports the resulting workflow step
"""

import logging
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime

from contracts import (
    ChatMessage,
    ChatRole,
    Draft,
    DraftMetadata,
    MessageOutcome,
)
from extraction import FieldExtractor
from storage import StorageAdapter, MemoryStorage, get_storage
from validation import InputValidator, get_validator
from orchestrator.context_store import ContextStore
from orchestrator.draft_manager import DraftManager
from orchestrator.migration import MigrationResult
from orchestrator.session_manager import SessionManager
from orchestrator.workflow import WorkflowStateMachine
from config import settings


logger = logging.getLogger(__name__)


class GrantEngine:
    """One conversation over one storage.

    Responsibilities:
    - Turn messages into validated context changes
    - Keep the session alive and its snapshot current
    - Throttle autosaves by counting accepted changes
    - Save and restore named drafts
    """

    def __init__(
        self,
        storage: Optional[StorageAdapter] = None,
        validator: Optional[InputValidator] = None,
        autosave_every: Optional[int] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the engine and load persisted state.

        Args:
            storage: Repository for all state; defaults to the configured backend
            validator: Validator shared by every component
            autosave_every: Accepted changes between autosaves
            now: Clock for sessions and drafts, injectable for tests
        """
        self.storage = storage if storage is not None else get_storage()
        self.validator = validator or get_validator()
        self.autosave_every = autosave_every or settings.autosave_every_n_changes

        self.extractor = FieldExtractor(self.validator)
        self.workflow = WorkflowStateMachine(self.validator)
        self.context_store = ContextStore(self.storage, self.validator, self.workflow)
        self.migration: MigrationResult = self.context_store.load()
        self.session_manager = SessionManager(self.storage, self.context_store, now=now)
        self.session = self.session_manager.load()
        self.draft_manager = DraftManager(self.storage, now=now)

        self.transcript: List[ChatMessage] = []
        self._changes_since_autosave = 0

    def handle_message(self, message: str) -> MessageOutcome:
        """Process one user message.

        Args:
            message: Raw user message

        Returns:
            MessageOutcome with accepted and rejected fields and the current step
        """
        self.transcript.append(ChatMessage(role=ChatRole.USER, content=message))

        extraction = self.extractor.extract(message, self.context_store.get_context())
        accepted: List[str] = []
        if not extraction.is_empty:
            accepted = self.context_store.update_context(extraction.patch)

        if accepted:
            self._changes_since_autosave += 1
            logger.info("Accepted %s via %s rule", accepted, extraction.matched_rule)
        elif extraction.rejected:
            self.session_manager.record_invalid_attempt()

        autosaved = False
        if self._changes_since_autosave >= self.autosave_every:
            autosaved = self.autosave() is not None
            self._changes_since_autosave = 0

        return MessageOutcome(
            message=message,
            accepted_fields=accepted,
            rejected_fields=extraction.rejected,
            matched_rule=extraction.matched_rule,
            step=self.context_store.current_step(),
            context=self.context_store.get_context(),
            autosaved=autosaved,
        )

    def add_assistant_message(self, text: str) -> ChatMessage:
        message = ChatMessage(role=ChatRole.ASSISTANT, content=text)
        self.transcript.append(message)
        return message

    def autosave(self) -> Optional[Draft]:
        return self.draft_manager.autosave(
            self.context_store.get_context(),
            transcript=list(self.transcript),
            metadata=self._draft_metadata(),
        )

    def save_draft(self, name: Optional[str] = None) -> Draft:
        return self.draft_manager.save_draft(
            name,
            self.context_store.get_context(),
            transcript=list(self.transcript),
            metadata=self._draft_metadata(),
        )

    def restore_draft(self, draft_id: str) -> Optional[Draft]:
        """Load a draft into the live context and transcript.

        Named drafts become the current draft, so the next save overwrites them.
        """
        draft = self.draft_manager.load_draft(draft_id)
        if draft is None:
            logger.warning("Draft %s not found", draft_id)
            return None

        self.context_store.restore(draft.context)
        self.transcript = list(draft.transcript or [])
        self._changes_since_autosave = 0
        return draft

    def reset(self) -> None:
        """Start over: new session, empty context and transcript."""
        self.session = self.session_manager.reset()
        self.draft_manager.set_current_draft_id(None)
        self.transcript = []
        self._changes_since_autosave = 0

    def status(self) -> Dict[str, Any]:
        """Snapshot of the session for display."""
        step = self.context_store.current_step()
        session = self.session_manager.current_session
        return {
            "session_id": session.id if session else None,
            "expires_at": session.expires_at.isoformat() if session else None,
            "step": step.value,
            "missing": self.context_store.validate_step_requirements(step).missing,
            "completion": self.context_store.get_overall_completion(),
            "summary": self.context_store.get_summary(),
            "context": self.context_store.get_context().model_dump(mode="json", exclude_none=True),
            "current_draft": self.draft_manager.current_draft_id,
            "messages": len(self.transcript),
        }

    def _draft_metadata(self) -> DraftMetadata:
        return DraftMetadata(
            completion_percentage=self.context_store.get_overall_completion(),
            last_section=self.context_store.current_step().value,
        )


def run_conversation(
    messages: List[str],
    storage: Optional[StorageAdapter] = None,
) -> List[MessageOutcome]:
    """Convenience function for feeding a list of messages through a fresh engine.

    Args:
        messages: User messages in order
        storage: Storage to use; an in-memory store when omitted

    Returns:
        One MessageOutcome per message
    """
    engine = GrantEngine(storage=storage if storage is not None else MemoryStorage())
    return [engine.handle_message(message) for message in messages]

"""Orchestrator module: context, workflow, sessions and drafts for a proposal conversation."""

from .workflow import (
    WorkflowStateMachine,
    STEP_ORDER,
    step_index,
    next_step,
    previous_step,
)
from .migration import MigrationResult, migrate_persisted_context
from .context_store import ContextStore
from .session_manager import SessionManager
from .draft_manager import DraftManager
from .grant_engine import GrantEngine, run_conversation

__all__ = [
    "WorkflowStateMachine",
    "STEP_ORDER",
    "step_index",
    "next_step",
    "previous_step",
    "MigrationResult",
    "migrate_persisted_context",
    "ContextStore",
    "SessionManager",
    "DraftManager",
    "GrantEngine",
    "run_conversation",
]

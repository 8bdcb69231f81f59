"""Pydantic contracts for the Grant Context Engine.

Every record that crosses a component boundary or is persisted is typed here.
"""

from .context_contracts import (
    utc_now,
    ApplicationContext,
    SectionStatus,
    SectionProgress,
    ChatRole,
    ChatMessage,
)

from .validation_contracts import (
    ValidationResult,
    ExtractionResult,
)

from .workflow_contracts import (
    WorkflowStep,
    LEGACY_STEP_IDS,
    StepRequirements,
    TransitionResult,
)

from .session_contracts import (
    SessionMetadata,
    Session,
)

from .draft_contracts import (
    DraftMetadata,
    Draft,
    DraftExport,
    DraftStats,
)

from .engine_contracts import MessageOutcome

__all__ = [
    # Context
    "utc_now",
    "ApplicationContext",
    "SectionStatus",
    "SectionProgress",
    "ChatRole",
    "ChatMessage",
    # Validation
    "ValidationResult",
    "ExtractionResult",
    # Workflow
    "WorkflowStep",
    "LEGACY_STEP_IDS",
    "StepRequirements",
    "TransitionResult",
    # Session
    "SessionMetadata",
    "Session",
    # Drafts
    "DraftMetadata",
    "Draft",
    "DraftExport",
    "DraftStats",
    # Engine
    "MessageOutcome",
]

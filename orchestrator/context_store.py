"""Context store: single source of truth for the collected proposal facts.

Holds the ApplicationContext and per-section progress for the live session,
persists every change and notifies subscribers after the write.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from contracts import (
    ApplicationContext,
    SectionProgress,
    SectionStatus,
    StepRequirements,
    WorkflowStep,
    utc_now,
)
from storage import StorageAdapter
from validation import InputValidator, get_validator
from orchestrator.migration import MigrationResult, build_record, migrate_persisted_context
from orchestrator.workflow import StepLike, WorkflowStateMachine, STEP_ORDER
from config import settings, VALIDATED_FIELDS


logger = logging.getLogger(__name__)

ContextListener = Callable[[ApplicationContext], Any]


class ContextStore:
    """Owns the live context and section progress for one session.

    Readers always receive deep copies. Writers go through update_context,
    which validates gating fields before anything is merged.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        validator: Optional[InputValidator] = None,
        workflow: Optional[WorkflowStateMachine] = None,
        schema_version: Optional[int] = None,
    ):
        """Initialize the store.

        Args:
            storage: Repository the context record is persisted to
            validator: Validator for gating fields
            workflow: State machine used for step questions
            schema_version: Schema tag of the persisted record
        """
        self.storage = storage
        self.validator = validator or get_validator()
        self.workflow = workflow or WorkflowStateMachine(self.validator)
        self.schema_version = schema_version or settings.context_schema_version

        self._context = ApplicationContext()
        self._sections: Dict[str, SectionProgress] = {}
        self._listeners: List[ContextListener] = []

    @property
    def storage_key(self) -> str:
        return settings.context_key(self.schema_version)

    def load(self) -> MigrationResult:
        """Load persisted state, migrating older or legacy data first."""
        result = migrate_persisted_context(self.storage, self.validator, self.schema_version)
        self._context = result.context
        self._sections = result.section_progress
        return result

    def get_context(self) -> ApplicationContext:
        return self._context.model_copy(deep=True)

    def update_context(self, patch: Union[Dict[str, Any], ApplicationContext]) -> List[str]:
        """Merge a partial context.

        Gating fields are validated and silently dropped when rejected. None
        values never clear a field. Applying the same patch twice changes
        nothing the second time.

        Args:
            patch: Field values by snake_case or camelCase name

        Returns:
            Names of the fields whose value changed
        """
        if isinstance(patch, ApplicationContext):
            items = patch.model_dump(exclude_none=True)
        else:
            items = dict(patch or {})

        current = self._context.model_dump()
        changes: Dict[str, Any] = {}
        for key, value in items.items():
            if value is None:
                continue
            name = ApplicationContext.resolve_field_name(key)
            if name == "last_updated":
                continue
            if name in VALIDATED_FIELDS:
                result = self.validator.validate(name, value)
                if not result.is_valid:
                    logger.debug("Dropped %s from context update: %s", name, result.reason)
                    continue
                value = result.sanitized_value
            if current.get(name) != value:
                changes[name] = value

        if not changes:
            return []

        merged = {**current, **changes, "last_updated": utc_now()}
        try:
            updated = ApplicationContext.model_validate(merged)
        except ValidationError as e:
            logger.warning("Rejected context update %s: %s", list(changes), e)
            return []

        self._context = updated
        self._persist()
        self._notify()
        return list(changes)

    def clear_context(self) -> None:
        """Reset context and section progress."""
        self._context = ApplicationContext()
        self._sections = {}
        self._persist()
        self._notify()

    def restore(
        self,
        context: ApplicationContext,
        sections: Optional[Dict[str, SectionProgress]] = None,
    ) -> None:
        """Replace the live state wholesale, e.g. when switching sessions.

        Sections are kept as they are when none are given.
        """
        self._context = context.model_copy(deep=True)
        if sections is not None:
            self._sections = {k: v.model_copy(deep=True) for k, v in sections.items()}
        self._persist()
        self._notify()

    def subscribe(self, listener: ContextListener) -> Callable[[], None]:
        """Register a listener called with a context copy after every change.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def validate_step_requirements(self, step: StepLike) -> StepRequirements:
        return self.workflow.requirements(step, self._context, self._sections)

    def can_advance_to_step(self, from_step: StepLike, to_step: StepLike) -> bool:
        return self.workflow.can_advance(from_step, to_step, self._context, self._sections)

    def current_step(self) -> WorkflowStep:
        return self.workflow.current_step(self._context, self._sections)

    def update_section_progress(
        self,
        step: StepLike,
        status: Optional[Union[SectionStatus, str]] = None,
        completion_percentage: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> SectionProgress:
        """Record progress reported by the section editor.

        The entry is created on first touch. A percentage of 100 without an
        explicit status marks the section complete.

        Raises:
            ValueError: If the step is unknown or the percentage is out of range
        """
        step = WorkflowStep.parse(step)
        data = self.get_section_progress(step).model_dump()

        if completion_percentage is not None:
            data["completion_percentage"] = completion_percentage
            if status is None:
                if completion_percentage >= 100:
                    status = SectionStatus.COMPLETE
                elif completion_percentage > 0 and data["status"] == SectionStatus.NOT_STARTED:
                    status = SectionStatus.IN_PROGRESS
        if status is not None:
            data["status"] = status
        if notes is not None:
            data["notes"] = notes
        data["last_modified"] = utc_now()

        # pydantic's ValidationError subclasses ValueError
        progress = SectionProgress.model_validate(data)
        self._sections[step.value] = progress
        self._persist()
        self._notify()
        return progress.model_copy()

    def get_section_progress(self, step: StepLike) -> SectionProgress:
        step = WorkflowStep.parse(step)
        progress = self._sections.get(step.value)
        return progress.model_copy() if progress else SectionProgress()

    def get_sections(self) -> Dict[str, SectionProgress]:
        return {k: v.model_copy(deep=True) for k, v in self._sections.items()}

    def get_overall_completion(self) -> int:
        return self.workflow.overall_completion(self._context, self._sections)

    def get_summary(self) -> str:
        """One-line summary of the collected facts for the language-model prompt."""
        labels = [
            ("Organization", self._context.organization_name),
            ("Project", self._context.project_title),
            ("Call", self._context.call),
            ("Template", self._context.template_id),
        ]
        parts = [f"{label}: {value}" for label, value in labels if value]
        if not parts:
            return "No context collected yet"

        done = [step.value for step in STEP_ORDER if self._sections.get(step.value, SectionProgress()).is_complete]
        if done:
            parts.append(f"Completed: {', '.join(done)}")
        return " | ".join(parts)

    def _persist(self) -> None:
        self.storage.set(self.storage_key, build_record(self._context, self._sections, self.schema_version))

    def _notify(self) -> None:
        snapshot = self.get_context()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Context listener %r failed", listener)

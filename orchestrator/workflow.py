"""Workflow state machine over the five proposal steps.

Step order is fixed: Grundlagen -> Excellence -> Impact -> Implementation -> Überprüfung.
The machine holds no state of its own; every answer is computed from the
context and the section progress passed in.
"""

from typing import Dict, List, Optional, Union

from contracts import (
    ApplicationContext,
    SectionProgress,
    StepRequirements,
    TransitionResult,
    WorkflowStep,
)
from validation import InputValidator, get_validator
from config import GATING_FIELDS


StepLike = Union[WorkflowStep, str]

STEP_ORDER: List[WorkflowStep] = list(WorkflowStep)
FIRST_STEP = STEP_ORDER[0]
TERMINAL_STEP = STEP_ORDER[-1]


def step_index(step: StepLike) -> int:
    """Position of a step in the workflow order."""
    return STEP_ORDER.index(WorkflowStep.parse(step))


def next_step(step: StepLike) -> Optional[WorkflowStep]:
    index = step_index(step)
    return STEP_ORDER[index + 1] if index + 1 < len(STEP_ORDER) else None


def previous_step(step: StepLike) -> Optional[WorkflowStep]:
    index = step_index(step)
    return STEP_ORDER[index - 1] if index > 0 else None


class WorkflowStateMachine:
    """Decides step readiness and whether a transition is allowed."""

    def __init__(self, validator: Optional[InputValidator] = None):
        self.validator = validator or get_validator()

    def requirements(
        self,
        step: StepLike,
        context: ApplicationContext,
        sections: Optional[Dict[str, SectionProgress]] = None,
    ) -> StepRequirements:
        """Evaluate what a step still needs before it may be left.

        Args:
            step: Step to evaluate
            context: Current application context
            sections: Section progress keyed by step value

        Returns:
            StepRequirements with the unmet items
        """
        step = WorkflowStep.parse(step)
        sections = sections or {}

        if step == FIRST_STEP:
            missing = [
                field for field in GATING_FIELDS
                if not self.validator.validate(field, getattr(context, field)).is_valid
            ]
            done = len(GATING_FIELDS) - len(missing)
            return StepRequirements(
                step=step,
                satisfied=not missing,
                missing=missing,
                completion_percentage=int(done * 100 / len(GATING_FIELDS)),
            )

        if step == TERMINAL_STEP:
            return StepRequirements(step=step, satisfied=True, completion_percentage=100)

        progress = sections.get(step.value)
        if progress is not None and progress.is_complete:
            return StepRequirements(step=step, satisfied=True, completion_percentage=100)

        return StepRequirements(
            step=step,
            satisfied=False,
            missing=[f"section:{step.value}"],
            completion_percentage=int(progress.completion_percentage) if progress else 0,
        )

    def check_transition(
        self,
        from_step: StepLike,
        to_step: StepLike,
        context: ApplicationContext,
        sections: Optional[Dict[str, SectionProgress]] = None,
    ) -> TransitionResult:
        """Check a move between two steps.

        Backward moves and staying put are always allowed. Moving forward is
        allowed one step at a time, once the current step is satisfied.
        """
        source = WorkflowStep.parse(from_step)
        target = WorkflowStep.parse(to_step)
        distance = STEP_ORDER.index(target) - STEP_ORDER.index(source)

        if distance <= 0:
            return TransitionResult(from_step=source, to_step=target, allowed=True)

        if distance > 1:
            return TransitionResult(
                from_step=source,
                to_step=target,
                allowed=False,
                reason=f"cannot skip from {source.value} to {target.value}",
            )

        requirements = self.requirements(source, context, sections)
        if not requirements.satisfied:
            return TransitionResult(
                from_step=source,
                to_step=target,
                allowed=False,
                reason=f"{source.value} incomplete: missing {', '.join(requirements.missing)}",
            )
        return TransitionResult(from_step=source, to_step=target, allowed=True)

    def can_advance(
        self,
        from_step: StepLike,
        to_step: StepLike,
        context: ApplicationContext,
        sections: Optional[Dict[str, SectionProgress]] = None,
    ) -> bool:
        """Whether `to_step` is the step right after `from_step` and may be entered.

        Backward moves and staying put are navigation, not advancing, so they
        answer False here; check_transition allows them.
        """
        if next_step(from_step) != WorkflowStep.parse(to_step):
            return False
        return self.check_transition(from_step, to_step, context, sections).allowed

    def current_step(
        self,
        context: ApplicationContext,
        sections: Optional[Dict[str, SectionProgress]] = None,
    ) -> WorkflowStep:
        """First step whose requirements are unsatisfied, else the terminal step."""
        for step in STEP_ORDER:
            if not self.requirements(step, context, sections).satisfied:
                return step
        return TERMINAL_STEP

    def overall_completion(
        self,
        context: ApplicationContext,
        sections: Optional[Dict[str, SectionProgress]] = None,
    ) -> int:
        """Mean completion of every non-terminal step, 0 to 100."""
        steps = STEP_ORDER[:-1]
        total = sum(self.requirements(step, context, sections).completion_percentage for step in steps)
        return round(total / len(steps))

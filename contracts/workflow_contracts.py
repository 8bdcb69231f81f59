"""Workflow contracts: proposal steps and transition results."""

from pydantic import BaseModel, Field
from typing import List, Optional, Union
from enum import Enum


class WorkflowStep(str, Enum):
    """Proposal workflow steps, in their fixed order."""
    GRUNDLAGEN = "Grundlagen"
    EXCELLENCE = "Excellence"
    IMPACT = "Impact"
    IMPLEMENTATION = "Implementation"
    UEBERPRUEFUNG = "Überprüfung"

    @classmethod
    def parse(cls, value: Union["WorkflowStep", str]) -> "WorkflowStep":
        """Resolve a step from a member, its display value, or a legacy step id.

        Raises:
            ValueError: If the value names no step.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for step in cls:
                if step.value.lower() == key or step.name.lower() == key:
                    return step
            if key in LEGACY_STEP_IDS:
                return LEGACY_STEP_IDS[key]
        raise ValueError(
            f"Unknown workflow step: {value!r}. "
            f"Valid steps: {[s.value for s in cls]}"
        )


# Step ids used by earlier versions of the assistant
LEGACY_STEP_IDS = {
    "introduction": WorkflowStep.GRUNDLAGEN,
    "excellence": WorkflowStep.EXCELLENCE,
    "impact": WorkflowStep.IMPACT,
    "implementation": WorkflowStep.IMPLEMENTATION,
    "review": WorkflowStep.UEBERPRUEFUNG,
    "uberprufung": WorkflowStep.UEBERPRUEFUNG,
}


class StepRequirements(BaseModel):
    """Readiness of a step against the current context."""
    step: WorkflowStep
    satisfied: bool = Field(..., description="True when nothing is missing")
    missing: List[str] = Field(default_factory=list, description="Unmet requirements")
    completion_percentage: int = Field(..., ge=0, le=100)


class TransitionResult(BaseModel):
    """Answer to a request to move between two steps."""
    from_step: WorkflowStep
    to_step: WorkflowStep
    allowed: bool
    reason: Optional[str] = Field(None, description="Why the transition was rejected")

"""Engine contracts for one processed conversation turn."""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from .context_contracts import ApplicationContext
from .workflow_contracts import WorkflowStep


class MessageOutcome(BaseModel):
    """What a single user message changed in the session."""
    message: str
    accepted_fields: List[str] = Field(default_factory=list)
    rejected_fields: Dict[str, str] = Field(default_factory=dict)
    matched_rule: Optional[str] = None
    step: WorkflowStep
    context: ApplicationContext
    autosaved: bool = False

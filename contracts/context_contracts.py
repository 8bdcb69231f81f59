"""Context contracts: the structured facts collected during a proposal conversation."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Any
from enum import Enum
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current time used for every persisted timestamp."""
    return datetime.now(timezone.utc)


class ApplicationContext(BaseModel):
    """Canonical business-fact record for one proposal session.

    Only organization_name, project_title and call gate workflow progression.
    Unknown metadata keys are kept as extras and flow through unvalidated.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    # Gating fields
    organization_name: Optional[str] = Field(None, alias="organizationName", description="Applicant organization")
    project_title: Optional[str] = Field(None, alias="projectTitle", description="Multi-word proposal title")
    call: Optional[str] = Field(None, description="Funding-call identifier, e.g. HORIZON-CL2-2025-DEMOCRACY-01")

    # Resolved from the call
    call_identifier: Optional[str] = Field(None, alias="callIdentifier", description="Alternate call identifier slot")
    program_type: Optional[str] = Field(None, alias="programType", description="Program prefix, e.g. HORIZON or CERV")
    template_id: Optional[str] = Field(None, alias="templateId", description="Proposal template chosen for the call")

    # Pass-through metadata
    country: Optional[str] = Field(None, description="Country of registration")
    estimated_budget: Optional[str] = Field(None, alias="estimatedBudget", description="Free-text budget estimate")
    partners: Optional[List[Any]] = Field(None, description="Consortium partners")
    language: Optional[str] = Field(None, description="Conversation language code")
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated", description="Time of the last merge")

    def is_empty(self) -> bool:
        """True when no field (declared or extra) holds a value."""
        return not self.model_dump(exclude_none=True)

    @classmethod
    def resolve_field_name(cls, key: str) -> str:
        """Map a camelCase alias to its field name; unknown keys pass through."""
        if key in cls.model_fields:
            return key
        for name, info in cls.model_fields.items():
            if info.alias == key:
                return name
        return key


class SectionStatus(str, Enum):
    """Editing status of one proposal section."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class SectionProgress(BaseModel):
    """Per-section progress record, keyed by workflow step."""
    model_config = ConfigDict(populate_by_name=True)

    status: SectionStatus = Field(default=SectionStatus.NOT_STARTED)
    completion_percentage: float = Field(
        default=0.0, ge=0.0, le=100.0, alias="completionPercentage",
        description="Completion from 0 to 100",
    )
    notes: Optional[str] = Field(None, description="Free-form notes from the section editor")
    last_modified: Optional[datetime] = Field(None, alias="lastModified")

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        # Older records used "completed" and "validated"
        if isinstance(value, str) and value.lower() in ("completed", "validated"):
            return SectionStatus.COMPLETE
        return value

    @property
    def is_complete(self) -> bool:
        return self.status == SectionStatus.COMPLETE


class ChatRole(str, Enum):
    """Author of a transcript entry."""
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """One entry of the conversation transcript."""
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)

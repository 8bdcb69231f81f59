"""Session contracts."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional
from datetime import datetime

from .context_contracts import ApplicationContext, SectionProgress, utc_now


class SessionMetadata(BaseModel):
    """Auxiliary information kept with a session."""
    model_config = ConfigDict(populate_by_name=True)

    language: Optional[str] = None
    invalid_attempts: int = Field(default=0, ge=0, alias="invalidAttempts")


class Session(BaseModel):
    """Time-bounded identity wrapping one live context."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Session id, also the storage key suffix")
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=utc_now, alias="updatedAt")
    expires_at: datetime = Field(..., alias="expiresAt", description="Fixed at creation, never extended")
    version: int = Field(default=1, ge=1, description="Session record format")
    context: ApplicationContext = Field(default_factory=ApplicationContext)
    section_progress: Dict[str, SectionProgress] = Field(default_factory=dict, alias="sectionProgress")
    metadata: SessionMetadata = Field(default_factory=SessionMetadata)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once the current time is past expires_at."""
        return (now or utc_now()) > self.expires_at

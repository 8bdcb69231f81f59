"""Draft contracts: named, versioned snapshots of a proposal session."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from .context_contracts import ApplicationContext, ChatMessage, utc_now


class DraftMetadata(BaseModel):
    """Optional figures reported by the section editor when saving."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    completion_percentage: Optional[float] = Field(
        None, ge=0.0, le=100.0, alias="completionPercentage"
    )
    word_count: Optional[int] = Field(None, ge=0, alias="wordCount")
    last_section: Optional[str] = Field(None, alias="lastSection")


class Draft(BaseModel):
    """Point-in-time capture of context, transcript and populated sections."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    version: int = Field(default=1, ge=1, description="Incremented on every save of this id")
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=utc_now, alias="updatedAt")
    auto_save: bool = Field(default=False, alias="autoSave")
    context: ApplicationContext
    transcript: Optional[List[ChatMessage]] = Field(
        None, validation_alias=AliasChoices("transcript", "messages")
    )
    populated_sections: Optional[List[Dict[str, Any]]] = Field(None, alias="populatedSections")
    template_id: Optional[str] = Field(None, alias="templateId")
    metadata: Optional[DraftMetadata] = None


class DraftExport(BaseModel):
    """Portable, self-describing export document for one draft."""
    model_config = ConfigDict(populate_by_name=True)

    format_version: int = Field(..., alias="formatVersion")
    exported_at: datetime = Field(default_factory=utc_now, alias="exportedAt")
    draft: Draft


class DraftStats(BaseModel):
    """Aggregate figures over the stored named drafts."""
    total_drafts: int = Field(..., ge=0)
    average_completion: float = Field(..., ge=0.0, le=100.0)
    total_words: int = Field(default=0, ge=0)
    last_saved: Optional[datetime] = None

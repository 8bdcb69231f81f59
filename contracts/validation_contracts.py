"""Validation and extraction result contracts."""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Any


class ValidationResult(BaseModel):
    """Outcome of validating one candidate value for one field."""
    field: str = Field(..., description="Field the value was validated for")
    is_valid: bool = Field(..., description="Whether the value was accepted")
    sanitized_value: Optional[str] = Field(None, description="Value to store when accepted")
    reason: Optional[str] = Field(None, description="Why the value was rejected")
    suggestions: List[str] = Field(default_factory=list, description="Hints for a better value")


class ExtractionResult(BaseModel):
    """Candidate context patch produced from one message."""
    patch: Dict[str, Any] = Field(default_factory=dict, description="Accepted field values")
    matched_rule: Optional[str] = Field(None, description="Extraction rule that produced the patch")
    rejected: Dict[str, str] = Field(
        default_factory=dict,
        description="Fields a candidate was offered for but rejected, with the reason",
    )

    @property
    def is_empty(self) -> bool:
        return not self.patch

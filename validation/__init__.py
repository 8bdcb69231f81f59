"""Validation module for sanitizing and checking extracted field values."""

from .validator import (
    InputValidator,
    get_validator,
    sanitize,
    is_generic_phrase,
    is_call_identifier_shape,
    validate_organization_name,
    validate_project_title,
    validate_call_identifier,
    validate_free_text,
    CALL_TOKEN_RE,
)
from .blacklist import GENERIC_PHRASES, GENERIC_PATTERNS

__all__ = [
    "InputValidator",
    "get_validator",
    "sanitize",
    "is_generic_phrase",
    "is_call_identifier_shape",
    "validate_organization_name",
    "validate_project_title",
    "validate_call_identifier",
    "validate_free_text",
    "CALL_TOKEN_RE",
    "GENERIC_PHRASES",
    "GENERIC_PATTERNS",
]

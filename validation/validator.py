"""Field validators and sanitizer for conversational input.

Validators never raise: every check returns a ValidationResult carrying
either the sanitized value to store or the reason it was rejected.
"""

import logging
import re
from typing import Any, Callable, Dict, Optional

from contracts import ApplicationContext, ValidationResult
from config import settings, GATING_FIELDS
from validation.blacklist import GENERIC_PHRASES, GENERIC_PATTERNS, PHRASE_JOINERS


logger = logging.getLogger(__name__)

# Markup and invisible characters removed by sanitize()
_SCRIPT_BLOCK_RE = re.compile(
    r"<\s*(script|style)\b[^>]*>.*?<\s*/\s*\1\s*>", re.IGNORECASE | re.DOTALL
)
_TAG_RE = re.compile(r"<[^>]*>")
_ANGLE_RE = re.compile(r"[<>]")
_CTRL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_INVISIBLE_RE = re.compile(r"[\u200B-\u200F\u202A-\u202E\u2060-\u2064\u206A-\u206F\uFEFF]")
_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_PUNCT_RE = re.compile(r"[\s.!?,;:]+$")
_PUNCT_ONLY_RE = re.compile(r"^[\s\W_]*$")

# Call identifiers: uppercase alphanumeric segments joined by hyphens,
# an alphabetic program prefix first, and a 4-digit year somewhere
CALL_IDENTIFIER_RE = re.compile(r"^[A-Z0-9]*[A-Z][A-Z0-9]*(?:-[A-Z0-9]+){2,}$")
CALL_TOKEN_RE = re.compile(r"(?<![\w-])[A-Z0-9]*[A-Z][A-Z0-9]*(?:-[A-Z0-9]+){2,}(?![\w-])")
_YEAR_SEGMENT_RE = re.compile(r"^\d{4}$")
_LETTER_RE = re.compile(r"[^\W\d_]")


def sanitize(value: Any) -> str:
    """Strip markup, control characters and redundant whitespace.

    Idempotent: sanitize(sanitize(s)) == sanitize(s).
    """
    if value is None:
        return ""
    text = str(value)
    text = _SCRIPT_BLOCK_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    text = _ANGLE_RE.sub("", text)
    text = _CTRL_RE.sub("", text)
    text = _INVISIBLE_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()


def _normalize_phrase(value: str) -> str:
    text = _WHITESPACE_RE.sub(" ", value.lower()).strip()
    return _TRAILING_PUNCT_RE.sub("", text)


def is_generic_phrase(value: Any) -> bool:
    """Check whether a value is conversational filler rather than content."""
    if not isinstance(value, str) or not value:
        return False

    if _PUNCT_ONLY_RE.match(value):
        return True

    normalized = _normalize_phrase(value)
    if normalized in GENERIC_PHRASES:
        return True

    if any(pattern.search(normalized) for pattern in GENERIC_PATTERNS):
        return True

    # Combined filler such as "sehr gut, weiter" or "ok and continue"
    parts = [part for part in PHRASE_JOINERS.split(normalized) if part]
    if len(parts) > 1 and all(_normalize_phrase(part) in GENERIC_PHRASES for part in parts):
        return True

    return False


def is_call_identifier_shape(value: str) -> bool:
    """True when value is a structured call code with a year-like segment."""
    if not CALL_IDENTIFIER_RE.match(value):
        return False
    return any(_YEAR_SEGMENT_RE.match(segment) for segment in value.split("-"))


class InputValidator:
    """Per-field predicates plus the shared sanitizer.

    Thresholds default to the values in config.settings.
    """

    SUGGESTIONS: Dict[str, list] = {
        "organization_name": [
            "Enter your organization's official name",
            'Example: "Max Planck Institute for Innovation"',
            'Example: "Technical University of Munich"',
        ],
        "project_title": [
            "Enter a descriptive project title of at least two words",
            'Example: "AI-Enhanced Climate Monitoring System"',
            'Example: "Sustainable Urban Mobility Platform"',
        ],
        "call": [
            "Enter the full call identifier",
            'Example: "HORIZON-CL2-2025-DEMOCRACY-01"',
            'Example: "CERV-2025-CITIZENS-01"',
        ],
    }

    def __init__(
        self,
        organization_min_length: Optional[int] = None,
        project_title_min_words: Optional[int] = None,
    ):
        """Initialize the validator.

        Args:
            organization_min_length: Override for the minimum organization name length
            project_title_min_words: Override for the minimum words in a project title
        """
        self.organization_min_length = organization_min_length or settings.organization_min_length
        self.project_title_min_words = project_title_min_words or settings.project_title_min_words

        self._field_validators: Dict[str, Callable[[Any], ValidationResult]] = {
            "organization_name": self.validate_organization_name,
            "project_title": self.validate_project_title,
            "call": self.validate_call_identifier,
            "call_identifier": self._validate_call_identifier_slot,
        }

    def validate(self, field: str, value: Any) -> ValidationResult:
        """Validate a value for a field, falling back to free-text rules.

        Accepts snake_case or camelCase field names.
        """
        name = ApplicationContext.resolve_field_name(field)
        validator = self._field_validators.get(name)
        if validator is None:
            return self.validate_free_text(value, field=name)
        return validator(value)

    def validate_organization_name(self, value: Any) -> ValidationResult:
        field = "organization_name"
        clean = sanitize(value)
        if not clean:
            return self._reject(field, "organization name is required")
        if is_generic_phrase(clean):
            return self._reject(field, "organization name is a generic phrase", suggest=True)
        if len(clean) < self.organization_min_length:
            return self._reject(
                field, f"organization name must be at least {self.organization_min_length} characters"
            )
        if len(clean) > settings.organization_max_length:
            return self._reject(
                field, f"organization name must be at most {settings.organization_max_length} characters"
            )
        if not _LETTER_RE.search(clean):
            return self._reject(field, "organization name must contain a letter")
        return self._accept(field, clean)

    def validate_project_title(self, value: Any) -> ValidationResult:
        field = "project_title"
        clean = sanitize(value)
        if not clean:
            return self._reject(field, "project title is required")
        if is_generic_phrase(clean):
            return self._reject(field, "project title is a generic phrase", suggest=True)
        if len(clean.split()) < self.project_title_min_words:
            return self._reject(
                field, f"project title must have at least {self.project_title_min_words} words", suggest=True
            )
        if len(clean) < 5:
            return self._reject(field, "project title must be at least 5 characters")
        if len(clean) > settings.project_title_max_length:
            return self._reject(
                field, f"project title must be at most {settings.project_title_max_length} characters"
            )
        return self._accept(field, clean)

    def validate_call_identifier(self, value: Any) -> ValidationResult:
        field = "call"
        clean = sanitize(value)
        if not clean:
            return self._reject(field, "call identifier is required")
        if is_generic_phrase(clean):
            return self._reject(field, "call identifier is a generic phrase", suggest=True)
        if len(clean) > settings.call_max_length:
            return self._reject(
                field, f"call identifier must be at most {settings.call_max_length} characters"
            )
        if not is_call_identifier_shape(clean):
            return self._reject(field, "call identifier format is invalid", suggest=True)
        return self._accept(field, clean)

    def validate_free_text(self, value: Any, field: str = "text") -> ValidationResult:
        clean = sanitize(value)
        if not clean:
            return self._reject(field, f"{field} is empty")
        if is_generic_phrase(clean):
            return self._reject(field, f"{field} is a generic phrase")
        return self._accept(field, clean)

    def validate_batch(self, fields: Dict[str, Any]) -> Dict[str, ValidationResult]:
        """Validate several field values at once."""
        return {name: self.validate(name, value) for name, value in fields.items()}

    def is_context_valid(self, context: ApplicationContext) -> bool:
        """True when every gating field is present and valid."""
        for field in GATING_FIELDS:
            if not self.validate(field, getattr(context, field)).is_valid:
                return False
        return True

    def _validate_call_identifier_slot(self, value: Any) -> ValidationResult:
        result = self.validate_call_identifier(value)
        return result.model_copy(update={"field": "call_identifier"})

    def _accept(self, field: str, value: str) -> ValidationResult:
        return ValidationResult(field=field, is_valid=True, sanitized_value=value)

    def _reject(self, field: str, reason: str, suggest: bool = False) -> ValidationResult:
        logger.debug("Rejected %s: %s", field, reason)
        return ValidationResult(
            field=field,
            is_valid=False,
            reason=reason,
            suggestions=self.SUGGESTIONS.get(field, []) if suggest else [],
        )


# Shared default instance for the module-level helpers
_default_validator: Optional[InputValidator] = None


def get_validator() -> InputValidator:
    """Get the shared validator, creating one if needed."""
    global _default_validator
    if _default_validator is None:
        _default_validator = InputValidator()
    return _default_validator


def validate_organization_name(value: Any) -> ValidationResult:
    return get_validator().validate_organization_name(value)


def validate_project_title(value: Any) -> ValidationResult:
    return get_validator().validate_project_title(value)


def validate_call_identifier(value: Any) -> ValidationResult:
    return get_validator().validate_call_identifier(value)


def validate_free_text(value: Any, field: str = "text") -> ValidationResult:
    return get_validator().validate_free_text(value, field=field)

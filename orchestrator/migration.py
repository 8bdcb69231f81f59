"""Migration of persisted context from older schema versions and legacy keys.

Persisted record layout under ``context:v<N>``:

    {"schema_version": N, "context": {...}, "section_progress": {...}}

Sources are tried in order: the current key, the newest older tagged key,
then the untagged legacy keys written by earlier versions of the assistant.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from contracts import ApplicationContext, SectionProgress, WorkflowStep
from storage import StorageAdapter
from validation import InputValidator, get_validator
from config import settings, VALIDATED_FIELDS


logger = logging.getLogger(__name__)

LEGACY_CONTEXT_KEY = "grant-application-context"
LEGACY_STATE_KEY = "grant-assistant-state"
LEGACY_KEYS = [LEGACY_CONTEXT_KEY, LEGACY_STATE_KEY]

CONTEXT_KEY_RE = re.compile(r"^context:v(\d+)$")


@dataclass
class MigrationResult:
    """Outcome of one migration pass."""
    context: ApplicationContext = field(default_factory=ApplicationContext)
    section_progress: Dict[str, SectionProgress] = field(default_factory=dict)
    source: Optional[str] = None
    migrated: bool = False
    dropped_fields: List[str] = field(default_factory=list)


def build_record(
    context: ApplicationContext,
    section_progress: Dict[str, SectionProgress],
    schema_version: Optional[int] = None,
) -> Dict[str, Any]:
    """Serialize context and section progress into the persisted record."""
    return {
        "schema_version": schema_version or settings.context_schema_version,
        "context": context.model_dump(mode="json", by_alias=True, exclude_none=True),
        "section_progress": {
            step: progress.model_dump(mode="json", by_alias=True, exclude_none=True)
            for step, progress in section_progress.items()
        },
    }


def parse_context(raw: Any) -> ApplicationContext:
    """Parse a stored context, dropping fields that fail their type checks."""
    data = _as_dict(raw)
    if not data:
        return ApplicationContext()
    try:
        return ApplicationContext.model_validate(data)
    except ValidationError as e:
        bad_fields = {
            ApplicationContext.resolve_field_name(str(err["loc"][0]))
            for err in e.errors() if err.get("loc")
        }
        logger.warning("Dropping malformed context fields %s", sorted(bad_fields))
        cleaned = {
            k: v for k, v in data.items()
            if ApplicationContext.resolve_field_name(k) not in bad_fields
        }
        try:
            return ApplicationContext.model_validate(cleaned)
        except ValidationError as e2:
            logger.warning("Discarding unreadable context: %s", e2)
            return ApplicationContext()


def parse_sections(raw: Any) -> Dict[str, SectionProgress]:
    """Parse stored section progress; unknown steps and bad entries are dropped."""
    sections: Dict[str, SectionProgress] = {}
    for key, value in (_as_dict(raw) or {}).items():
        try:
            step = WorkflowStep.parse(key)
            sections[step.value] = SectionProgress.model_validate(value)
        except (ValueError, ValidationError) as e:
            logger.warning("Dropping section progress %r: %s", key, e)
    return sections


def parse_record(raw: Any) -> Tuple[ApplicationContext, Dict[str, SectionProgress]]:
    """Split a persisted record into context and section progress.

    Records from before the envelope was introduced are a bare context dict.
    """
    data = _as_dict(raw) or {}
    if "context" in data and isinstance(data.get("context"), dict):
        return parse_context(data["context"]), parse_sections(data.get("section_progress"))
    return parse_context(data), {}


def drop_invalid_fields(
    context: ApplicationContext,
    validator: Optional[InputValidator] = None,
) -> Tuple[ApplicationContext, List[str]]:
    """Run validated fields through the current validator.

    Rejected values are dropped; accepted ones are kept in sanitized form.

    Returns:
        The cleaned context and the names of the dropped fields
    """
    validator = validator or get_validator()
    updates: Dict[str, Any] = {}
    dropped: List[str] = []
    for name in VALIDATED_FIELDS:
        value = getattr(context, name)
        if value is None:
            continue
        result = validator.validate(name, value)
        if not result.is_valid:
            updates[name] = None
            dropped.append(name)
        elif result.sanitized_value != value:
            updates[name] = result.sanitized_value
    if not updates:
        return context, []
    if dropped:
        logger.info("Migration dropped invalid fields: %s", dropped)
    return context.model_copy(update=updates), dropped


def tagged_context_keys(storage: StorageAdapter) -> Dict[int, str]:
    """Map schema version to key for every ``context:v<N>`` key in storage."""
    found = {}
    for key in storage.keys("context:v"):
        match = CONTEXT_KEY_RE.match(key)
        if match:
            found[int(match.group(1))] = key
    return found


def migrate_persisted_context(
    storage: StorageAdapter,
    validator: Optional[InputValidator] = None,
    schema_version: Optional[int] = None,
) -> MigrationResult:
    """Run the migration pass and return the resulting context.

    Migrating data already at the current schema is a no-op, so running the
    pass twice equals running it once.

    Args:
        storage: Storage holding the persisted context
        validator: Validator applied to validated fields of older data
        schema_version: Target schema version; defaults to settings

    Returns:
        MigrationResult with the loaded context and what was done
    """
    version = schema_version or settings.context_schema_version
    current_key = settings.context_key(version)

    tagged = tagged_context_keys(storage)
    if version in tagged:
        context, sections = parse_record(storage.get(current_key))
        return MigrationResult(context=context, section_progress=sections, source=current_key)

    older = sorted((v for v in tagged if v < version), reverse=True)
    if older:
        source = tagged[older[0]]
        context, sections = parse_record(storage.get(source))
    else:
        source, context, sections = _read_legacy(storage)
        if source is None:
            return MigrationResult()

    context, dropped = drop_invalid_fields(context, validator)
    storage.set(current_key, build_record(context, sections, version))

    for v in older:
        storage.remove(tagged[v])
    for key in LEGACY_KEYS:
        storage.remove(key)

    logger.info("Migrated context from %s to %s", source, current_key)
    return MigrationResult(
        context=context,
        section_progress=sections,
        source=source,
        migrated=True,
        dropped_fields=dropped,
    )


def _read_legacy(
    storage: StorageAdapter,
) -> Tuple[Optional[str], ApplicationContext, Dict[str, SectionProgress]]:
    legacy = _as_dict(storage.get(LEGACY_CONTEXT_KEY))
    state = _as_dict(storage.get(LEGACY_STATE_KEY))
    if legacy is None and state is None:
        return None, ApplicationContext(), {}

    merged: Dict[str, Any] = dict(legacy or {})
    sections_raw: Any = None
    if state:
        # The assistant state blob only fills what the context key lacks
        project = _as_dict(state.get("projectContext")) or {}
        for key, value in project.items():
            if merged.get(key) is None:
                merged[key] = value
        sections_raw = state.get("sectionProgress")

    source = LEGACY_CONTEXT_KEY if legacy is not None else LEGACY_STATE_KEY
    return source, parse_context(merged), parse_sections(sections_raw)


def _as_dict(value: Any) -> Optional[Dict[str, Any]]:
    # Earlier versions stored JSON strings rather than objects
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring malformed persisted JSON: %s", e)
            return None
    return value if isinstance(value, dict) else None

"""Draft manager: named, versioned snapshots plus a single autosave slot.

Storage layout:
    drafts:index     ids of named drafts, newest first
    drafts:<id>      one draft record
    drafts:autosave  the reserved autosave slot
    drafts:current   id of the draft that the next save overwrites
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from contracts import (
    ApplicationContext,
    ChatMessage,
    Draft,
    DraftExport,
    DraftMetadata,
    DraftStats,
    utc_now,
)
from storage import StorageAdapter
from config import settings


logger = logging.getLogger(__name__)

DRAFT_PREFIX = "drafts:"
INDEX_KEY = "drafts:index"
AUTOSAVE_KEY = "drafts:autosave"
CURRENT_KEY = "drafts:current"
AUTOSAVE_ID = "autosave"

SUPPORTED_FORMAT_VERSIONS = {1}

MetadataLike = Union[DraftMetadata, Dict[str, Any]]


class DraftManager:
    """Saves, loads, exports and imports drafts of the proposal state."""

    def __init__(
        self,
        storage: StorageAdapter,
        max_drafts: Optional[int] = None,
        autosave_enabled: Optional[bool] = None,
        format_version: Optional[int] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the draft manager.

        Args:
            storage: Repository for draft records
            max_drafts: Named drafts kept before the oldest are dropped
            autosave_enabled: Whether autosave() writes the slot
            format_version: formatVersion written on export
            now: Clock, injectable for tests
        """
        self.storage = storage
        self.max_drafts = max_drafts or settings.max_drafts
        self.autosave_enabled = settings.autosave_enabled if autosave_enabled is None else autosave_enabled
        self.format_version = format_version or settings.draft_format_version
        self.now = now or utc_now

    @property
    def current_draft_id(self) -> Optional[str]:
        value = self.storage.get(CURRENT_KEY)
        return value if isinstance(value, str) else None

    def set_current_draft_id(self, draft_id: Optional[str]) -> None:
        if draft_id is None:
            self.storage.remove(CURRENT_KEY)
        else:
            self.storage.set(CURRENT_KEY, draft_id)

    def set_autosave_enabled(self, enabled: bool) -> None:
        self.autosave_enabled = enabled

    def save_draft(
        self,
        name: Optional[str],
        context: ApplicationContext,
        transcript: Optional[List[ChatMessage]] = None,
        populated_sections: Optional[List[Dict[str, Any]]] = None,
        metadata: Optional[MetadataLike] = None,
    ) -> Draft:
        """Save the current state as a named draft.

        When a current draft exists it is overwritten in place: id, name and
        created_at are kept, version is incremented and metadata merged.
        Otherwise a new draft with version 1 is created and becomes current.

        Args:
            name: Draft name; a dated default is used when empty
            context: Context to snapshot
            transcript: Conversation so far
            populated_sections: Section content from the template collaborator
            metadata: Completion figures

        Returns:
            The stored draft
        """
        now = self.now()
        current_id = self.current_draft_id
        existing = self._read(current_id) if current_id else None

        if existing is not None:
            merged = existing.metadata.model_dump(exclude_none=True) if existing.metadata else {}
            merged.update(self._metadata(metadata, populated_sections).model_dump(exclude_none=True))
            draft = Draft(
                id=existing.id,
                name=existing.name,
                version=existing.version + 1,
                created_at=existing.created_at,
                updated_at=now,
                context=context.model_copy(deep=True),
                transcript=transcript if transcript is not None else existing.transcript,
                populated_sections=populated_sections if populated_sections is not None else existing.populated_sections,
                template_id=context.template_id or existing.template_id,
                metadata=DraftMetadata.model_validate(merged),
            )
        else:
            draft = Draft(
                id=f"draft_{uuid.uuid4().hex[:12]}",
                name=(name or "").strip() or f"Draft {now:%Y-%m-%d %H:%M}",
                created_at=now,
                updated_at=now,
                context=context.model_copy(deep=True),
                transcript=transcript,
                populated_sections=populated_sections,
                template_id=context.template_id,
                metadata=self._metadata(metadata, populated_sections),
            )

        self._write(draft)
        self._add_to_index(draft.id)
        self.set_current_draft_id(draft.id)
        logger.info("Saved draft %s (%s) version %d", draft.id, draft.name, draft.version)
        return draft

    def autosave(
        self,
        context: ApplicationContext,
        transcript: Optional[List[ChatMessage]] = None,
        populated_sections: Optional[List[Dict[str, Any]]] = None,
        metadata: Optional[MetadataLike] = None,
    ) -> Optional[Draft]:
        """Write the reserved autosave slot.

        Never touches the named drafts or the current-draft pointer.

        Returns:
            The autosave draft, or None when autosave is disabled
        """
        if not self.autosave_enabled:
            return None

        now = self.now()
        existing = self.get_autosave()
        draft = Draft(
            id=AUTOSAVE_ID,
            name="Autosave",
            version=existing.version + 1 if existing else 1,
            created_at=existing.created_at if existing else now,
            updated_at=now,
            auto_save=True,
            context=context.model_copy(deep=True),
            transcript=transcript,
            populated_sections=populated_sections,
            template_id=context.template_id,
            metadata=self._metadata(metadata, populated_sections),
        )
        self.storage.set(AUTOSAVE_KEY, draft.model_dump(mode="json", by_alias=True))
        logger.debug("Autosaved version %d", draft.version)
        return draft

    def get_autosave(self) -> Optional[Draft]:
        return self._parse(self.storage.get(AUTOSAVE_KEY), AUTOSAVE_ID)

    def load_draft(self, draft_id: str) -> Optional[Draft]:
        """Read a draft and make it current, so the next save versions it.

        The autosave slot is returned as-is and never becomes current.
        """
        draft = self._find(draft_id)
        if draft is not None and draft_id != AUTOSAVE_ID:
            self.set_current_draft_id(draft.id)
        return draft

    def list_drafts(self) -> List[Draft]:
        """Named drafts, newest first."""
        drafts = []
        for draft_id in self._read_index():
            draft = self._read(draft_id)
            if draft is not None:
                drafts.append(draft)
        return drafts

    def delete_draft(self, draft_id: str) -> bool:
        """Delete a draft; clears the current pointer when it pointed at it.

        Returns:
            False when no such draft existed
        """
        if draft_id == AUTOSAVE_ID:
            existed = self.storage.exists(AUTOSAVE_KEY)
            self.storage.remove(AUTOSAVE_KEY)
            return existed

        key = self._key(draft_id)
        if not self.storage.exists(key):
            return False
        self.storage.remove(key)
        self.storage.set(INDEX_KEY, [i for i in self._read_index() if i != draft_id])
        if self.current_draft_id == draft_id:
            self.set_current_draft_id(None)
        logger.info("Deleted draft %s", draft_id)
        return True

    def clear_all_drafts(self) -> int:
        """Remove every draft, the autosave slot and the pointers.

        Returns:
            Number of named drafts removed
        """
        count = len(self._read_index())
        self.storage.clear_prefix(DRAFT_PREFIX)
        logger.info("Cleared %d draft(s)", count)
        return count

    def export_draft(self, draft_id: str) -> Optional[str]:
        """Serialize a draft into the portable export document."""
        draft = self._find(draft_id)
        if draft is None:
            return None
        document = DraftExport(format_version=self.format_version, exported_at=self.now(), draft=draft)
        return document.model_dump_json(by_alias=True, indent=2)

    def import_draft(self, content: Union[str, bytes, Dict[str, Any]]) -> Optional[Draft]:
        """Import an export document as a new named draft.

        The imported draft gets a fresh id, version 1 and an "Imported - "
        name prefix. Unknown format versions, malformed JSON and drafts
        without name or context are rejected.

        Returns:
            The stored draft, or None when the document was rejected
        """
        if isinstance(content, (str, bytes)):
            try:
                data = json.loads(content)
            except json.JSONDecodeError as e:
                logger.warning("Rejected draft import: invalid JSON (%s)", e)
                return None
        else:
            data = content

        if not isinstance(data, dict):
            logger.warning("Rejected draft import: not an export document")
            return None

        format_version = data.get("formatVersion", data.get("format_version"))
        if format_version not in SUPPORTED_FORMAT_VERSIONS:
            logger.warning("Rejected draft import: unsupported formatVersion %r", format_version)
            return None

        raw = data.get("draft")
        if not isinstance(raw, dict) or not raw.get("name") or not raw.get("context"):
            logger.warning("Rejected draft import: draft name or context missing")
            return None

        source = self._parse({**raw, "id": raw.get("id") or "imported"}, "import")
        if source is None:
            return None

        now = self.now()
        draft = Draft(
            id=f"draft_{uuid.uuid4().hex[:12]}",
            name=f"Imported - {source.name}",
            version=1,
            created_at=now,
            updated_at=now,
            context=source.context,
            transcript=source.transcript,
            populated_sections=source.populated_sections,
            template_id=source.template_id,
            metadata=source.metadata,
        )
        self._write(draft)
        self._add_to_index(draft.id)
        logger.info("Imported draft %s as %s", source.id, draft.id)
        return draft

    def get_draft_stats(self) -> DraftStats:
        """Aggregate figures over the named drafts; the autosave slot is excluded."""
        drafts = self.list_drafts()
        completions = [
            d.metadata.completion_percentage for d in drafts
            if d.metadata and d.metadata.completion_percentage is not None
        ]
        return DraftStats(
            total_drafts=len(drafts),
            average_completion=round(sum(completions) / len(completions), 1) if completions else 0.0,
            total_words=sum(d.metadata.word_count or 0 for d in drafts if d.metadata),
            last_saved=max((d.updated_at for d in drafts), default=None),
        )

    def _metadata(
        self,
        metadata: Optional[MetadataLike],
        populated_sections: Optional[List[Dict[str, Any]]],
    ) -> DraftMetadata:
        if isinstance(metadata, DraftMetadata):
            result = metadata.model_copy()
        else:
            result = DraftMetadata.model_validate(metadata or {})
        if result.word_count is None and populated_sections:
            result.word_count = _count_words(populated_sections)
        return result

    def _add_to_index(self, draft_id: str) -> None:
        ids = [draft_id] + [i for i in self._read_index() if i != draft_id]
        for dropped in ids[self.max_drafts:]:
            self.storage.remove(self._key(dropped))
            logger.info("Dropped draft %s beyond the limit of %d", dropped, self.max_drafts)
        self.storage.set(INDEX_KEY, ids[: self.max_drafts])

    def _read_index(self) -> List[str]:
        raw = self.storage.get(INDEX_KEY)
        if not isinstance(raw, list):
            return []
        return [i for i in raw if isinstance(i, str)]

    def _find(self, draft_id: str) -> Optional[Draft]:
        if draft_id == AUTOSAVE_ID:
            return self.get_autosave()
        return self._read(draft_id)

    def _read(self, draft_id: str) -> Optional[Draft]:
        return self._parse(self.storage.get(self._key(draft_id)), draft_id)

    def _parse(self, raw: Any, label: str) -> Optional[Draft]:
        if raw is None:
            return None
        try:
            return Draft.model_validate(raw)
        except ValidationError as e:
            logger.warning("Ignoring unreadable draft %s: %s", label, e)
            return None

    def _write(self, draft: Draft) -> None:
        self.storage.set(self._key(draft.id), draft.model_dump(mode="json", by_alias=True))

    def _key(self, draft_id: str) -> str:
        return f"{DRAFT_PREFIX}{draft_id}"


def _count_words(sections: List[Dict[str, Any]]) -> int:
    return sum(
        len(section["content"].split())
        for section in sections
        if isinstance(section, dict) and isinstance(section.get("content"), str)
    )

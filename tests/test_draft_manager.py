"""Tests for the draft manager."""

import json
import pytest

from contracts import ApplicationContext, ChatMessage, DraftMetadata
from orchestrator import DraftManager
from orchestrator.draft_manager import AUTOSAVE_KEY, CURRENT_KEY, INDEX_KEY
from storage import MemoryStorage


CONTEXT = ApplicationContext(
    organization_name="Open Society Foundations",
    project_title="Digital Democracy Shield",
    call="HORIZON-CL2-2025-DEMOCRACY-01",
    template_id="he-ria-2025",
)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def manager(storage):
    return DraftManager(storage)


class TestSaveAndLoad:
    """Test saving, overwriting and loading drafts."""

    def test_new_draft(self, manager):
        draft = manager.save_draft("First version", CONTEXT)

        assert draft.version == 1
        assert draft.name == "First version"
        assert draft.template_id == "he-ria-2025"
        assert manager.current_draft_id == draft.id

    def test_round_trip(self, manager):
        transcript = [ChatMessage(role="user", content="Open Society Foundations")]
        saved = manager.save_draft("First version", CONTEXT, transcript=transcript)

        loaded = manager.load_draft(saved.id)
        assert loaded.context.model_dump() == CONTEXT.model_dump()
        assert loaded.transcript[0].content == "Open Society Foundations"

    def test_overwrite_current_draft(self, manager):
        first = manager.save_draft("First version", CONTEXT, metadata={"completion_percentage": 40})
        updated_context = CONTEXT.model_copy(update={"country": "Deutschland"})
        second = manager.save_draft("Ignored name", updated_context, metadata=DraftMetadata(word_count=120))

        assert second.id == first.id
        assert second.name == "First version"
        assert second.version == 2
        assert second.created_at == first.created_at
        assert second.context.country == "Deutschland"
        assert second.metadata.completion_percentage == 40
        assert second.metadata.word_count == 120
        assert len(manager.list_drafts()) == 1

    def test_new_draft_after_clearing_pointer(self, manager):
        first = manager.save_draft("First version", CONTEXT)
        manager.set_current_draft_id(None)
        second = manager.save_draft("Second version", CONTEXT)

        assert second.id != first.id
        assert second.version == 1
        assert [d.id for d in manager.list_drafts()] == [second.id, first.id]

    def test_load_makes_draft_current(self, manager):
        first = manager.save_draft("First version", CONTEXT)
        manager.set_current_draft_id(None)
        second = manager.save_draft("Second version", CONTEXT)
        assert manager.current_draft_id == second.id

        manager.load_draft(first.id)
        assert manager.current_draft_id == first.id

        saved = manager.save_draft(None, CONTEXT)
        assert saved.id == first.id
        assert saved.version == 2
        assert manager.load_draft(second.id).version == 1

    def test_load_autosave_keeps_current(self, manager):
        draft = manager.save_draft("First version", CONTEXT)
        manager.autosave(CONTEXT)

        manager.load_draft("autosave")
        assert manager.current_draft_id == draft.id

    def test_export_keeps_current(self, manager):
        first = manager.save_draft("First version", CONTEXT)
        manager.set_current_draft_id(None)
        second = manager.save_draft("Second version", CONTEXT)

        manager.export_draft(first.id)
        assert manager.current_draft_id == second.id

    def test_default_name(self, manager):
        assert manager.save_draft("", CONTEXT).name.startswith("Draft ")

    def test_word_count_from_sections(self, manager):
        sections = [{"id": "excellence", "content": "Our objectives are clear and measurable"}]
        draft = manager.save_draft("With sections", CONTEXT, populated_sections=sections)
        assert draft.metadata.word_count == 6

    def test_max_drafts(self, storage):
        manager = DraftManager(storage, max_drafts=3)
        ids = []
        for i in range(4):
            manager.set_current_draft_id(None)
            ids.append(manager.save_draft(f"Draft {i}", CONTEXT).id)

        assert [d.id for d in manager.list_drafts()] == list(reversed(ids[1:]))
        assert manager.load_draft(ids[0]) is None

    def test_load_missing(self, manager):
        assert manager.load_draft("draft_missing") is None


class TestDelete:
    """Test deleting drafts."""

    def test_delete(self, manager, storage):
        draft = manager.save_draft("First version", CONTEXT)

        assert manager.delete_draft(draft.id)
        assert manager.load_draft(draft.id) is None
        assert manager.current_draft_id is None
        assert storage.get(INDEX_KEY) == []
        assert not manager.delete_draft(draft.id)

    def test_clear_all(self, manager, storage):
        manager.save_draft("First version", CONTEXT)
        manager.autosave(CONTEXT)

        assert manager.clear_all_drafts() == 1
        assert storage.keys("drafts:") == []


class TestExportImport:
    """Test the portable export format."""

    def test_export_document(self, manager):
        draft = manager.save_draft("First version", CONTEXT)
        document = json.loads(manager.export_draft(draft.id))

        assert document["formatVersion"] == 1
        assert "exportedAt" in document
        assert document["draft"]["name"] == "First version"
        assert document["draft"]["context"]["organizationName"] == "Open Society Foundations"

    def test_import_assigns_new_identity(self, manager):
        original = manager.save_draft("First version", CONTEXT)
        manager.save_draft("First version", CONTEXT)  # version 2

        imported = manager.import_draft(manager.export_draft(original.id))
        assert imported.id != original.id
        assert imported.name == "Imported - First version"
        assert imported.version == 1
        assert imported.context.model_dump() == CONTEXT.model_dump()
        assert manager.current_draft_id == original.id
        assert len(manager.list_drafts()) == 2

    def test_import_into_other_storage(self, manager):
        draft = manager.save_draft("First version", CONTEXT)
        other = DraftManager(MemoryStorage())
        imported = other.import_draft(manager.export_draft(draft.id))
        assert other.load_draft(imported.id).context.call == CONTEXT.call

    @pytest.mark.parametrize("content", [
        "{not json",
        json.dumps({"formatVersion": 99, "draft": {"name": "X", "context": {"call": "A"}}}),
        json.dumps({"formatVersion": 1, "draft": {"name": "No context"}}),
        json.dumps({"formatVersion": 1, "draft": {"context": {"organizationName": "Org"}}}),
        json.dumps(["not", "an", "object"]),
    ])
    def test_import_rejects(self, manager, content):
        assert manager.import_draft(content) is None
        assert manager.list_drafts() == []

    def test_export_missing(self, manager):
        assert manager.export_draft("draft_missing") is None


class TestAutosave:
    """Test the autosave slot."""

    def test_own_version_counter(self, manager, storage):
        first = manager.autosave(CONTEXT)
        second = manager.autosave(CONTEXT)

        assert first.auto_save
        assert (first.version, second.version) == (1, 2)
        assert storage.exists(AUTOSAVE_KEY)
        assert not storage.exists(INDEX_KEY)
        assert not storage.exists(CURRENT_KEY)
        assert manager.get_autosave().version == 2

    def test_disabled(self, manager):
        manager.set_autosave_enabled(False)
        assert manager.autosave(CONTEXT) is None
        assert manager.get_autosave() is None

    def test_load_by_reserved_id(self, manager):
        manager.autosave(CONTEXT)
        assert manager.load_draft("autosave").auto_save


class TestStats:
    """Test aggregate statistics."""

    def test_empty(self, manager):
        stats = manager.get_draft_stats()
        assert stats.total_drafts == 0
        assert stats.average_completion == 0
        assert stats.last_saved is None

    def test_named_drafts_only(self, manager):
        manager.save_draft("A", CONTEXT, metadata={"completion_percentage": 40, "word_count": 100})
        manager.set_current_draft_id(None)
        last = manager.save_draft("B", CONTEXT, metadata={"completion_percentage": 80, "word_count": 50})
        manager.set_current_draft_id(None)
        manager.save_draft("C", CONTEXT)
        manager.autosave(CONTEXT, metadata={"completion_percentage": 0, "word_count": 999})

        stats = manager.get_draft_stats()
        assert stats.total_drafts == 3
        assert stats.average_completion == 60.0
        assert stats.total_words == 150
        assert stats.last_saved >= last.updated_at

"""Tests for the session manager."""

import pytest
from datetime import datetime, timedelta, timezone

from orchestrator import ContextStore, SessionManager
from orchestrator.session_manager import ACTIVE_SESSION_KEY
from storage import MemoryStorage


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self):
        self.current = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    store = ContextStore(storage)
    store.load()
    return store


@pytest.fixture
def manager(storage, store, clock):
    return SessionManager(storage, store, now=clock)


class TestCreateAndTouch:
    """Test session creation and refresh."""

    def test_create(self, manager, storage, clock):
        session = manager.create()

        assert session.id.startswith("grant_session_")
        assert session.expires_at == clock() + timedelta(hours=24)
        assert storage.get(ACTIVE_SESSION_KEY) == session.id
        assert storage.exists(f"session:{session.id}")

    def test_touch_never_extends_expiry(self, manager, clock):
        session = manager.create()
        clock.advance(hours=5)

        touched = manager.touch()
        assert touched.updated_at == clock()
        assert touched.expires_at == session.expires_at

    def test_context_changes_touch_session(self, manager, store, storage):
        session = manager.create()
        store.update_context({"organization_name": "Open Society Foundations"})

        stored = storage.get(f"session:{session.id}")
        assert stored["context"]["organizationName"] == "Open Society Foundations"

    def test_touch_without_session(self, manager):
        assert manager.touch() is None


class TestLoad:
    """Test restoring and expiring sessions."""

    def test_load_keeps_live_session(self, storage, store, clock):
        first = SessionManager(storage, store, now=clock).load()
        clock.advance(hours=23)

        again = SessionManager(storage, store, now=clock).load()
        assert again.id == first.id

    def test_expired_session_replaced_and_context_cleared(self, storage, store, clock):
        manager = SessionManager(storage, store, now=clock)
        old = manager.load()
        store.update_context({"organization_name": "Open Society Foundations"})
        clock.advance(hours=25)

        fresh = SessionManager(storage, store, now=clock).load()
        assert fresh.id != old.id
        assert not storage.exists(f"session:{old.id}")
        assert store.get_context().is_empty()
        assert fresh.expires_at == clock() + timedelta(hours=24)

    def test_first_load_keeps_migrated_context(self, storage, store, clock):
        store.update_context({"project_title": "Digital Democracy Shield"})
        session = SessionManager(storage, store, now=clock).load()
        assert session.context.project_title == "Digital Democracy Shield"

    def test_cleanup_only_removes_expired(self, manager, clock):
        old = manager.create()
        clock.advance(hours=12)
        recent = manager.create()
        clock.advance(hours=13)

        assert manager.cleanup_expired() == [old.id]
        assert [s.id for s in manager.list_sessions()] == [recent.id]

    def test_is_expired(self, manager, clock):
        session = manager.create()
        assert not manager.is_expired(session)
        clock.advance(hours=24, seconds=1)
        assert manager.is_expired(session)


class TestSwitching:
    """Test activate and reset."""

    def test_activate_restores_snapshot(self, manager, store):
        first = manager.create()
        store.update_context({"organization_name": "Open Society Foundations"})
        manager.create()
        store.clear_context()

        activated = manager.activate(first.id)
        assert activated.id == first.id
        assert store.get_context().organization_name == "Open Society Foundations"

    def test_activate_unknown_or_expired(self, manager, clock):
        assert manager.activate("grant_session_missing") is None
        session = manager.create()
        clock.advance(hours=30)
        assert manager.activate(session.id) is None

    def test_reset(self, manager, store, storage):
        old = manager.create()
        store.update_context({"organization_name": "Open Society Foundations"})

        new = manager.reset()
        assert new.id != old.id
        assert not storage.exists(f"session:{old.id}")
        assert store.get_context().is_empty()

    def test_record_invalid_attempt(self, manager):
        manager.create()
        assert manager.record_invalid_attempt() == 1
        assert manager.record_invalid_attempt() == 2
        assert manager.current_session.metadata.invalid_attempts == 2

    def test_close_stops_touching(self, manager, store, storage):
        session = manager.create()
        manager.close()
        store.update_context({"organization_name": "Open Society Foundations"})
        assert storage.get(f"session:{session.id}")["context"].get("organizationName") is None

"""Unit tests for SessionRegistry."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from errors import DataIntegrityViolation, InvalidInput, NotFound
from models.session import Session
from services.session_registry import SessionRegistry
from services.vector_store import InMemoryVectorStore


def add_document(store, session_id, filename, chunk_count):
    store.add(
        ids=[f"{session_id}_chunk_{i}" for i in range(chunk_count)],
        vectors=[[1.0, float(i)] for i in range(chunk_count)],
        documents=[f"chunk {i}" for i in range(chunk_count)],
        metadatas=[{"session_id": session_id, "filename": filename, "position": i} for i in range(chunk_count)]
    )


class TestSessionRegistry:
    """Test suite for SessionRegistry."""

    @pytest.fixture
    def store(self):
        store = InMemoryVectorStore()
        add_document(store, "s1", "A.pdf", 3)
        add_document(store, "s2", "B.pdf", 2)
        return store

    def test_list_sessions(self, store):
        sessions = SessionRegistry(store).list_sessions()

        assert sessions == [
            Session(session_id="s1", filename="A.pdf", chunk_count=3),
            Session(session_id="s2", filename="B.pdf", chunk_count=2),
        ]

    def test_list_sessions_empty(self):
        assert SessionRegistry(InMemoryVectorStore()).list_sessions() == []

    def test_conflicting_filenames(self, store):
        store.add(["s1_chunk_9"], [[1.0, 0.0]], ["rogue"], [{"session_id": "s1", "filename": "Other.pdf"}])

        with pytest.raises(DataIntegrityViolation) as exc_info:
            SessionRegistry(store).list_sessions()

        assert exc_info.value.error.details["session_id"] == "s1"

    def test_missing_filename(self, store):
        store.add(["s3_chunk_0"], [[1.0, 0.0]], ["nameless"], [{"session_id": "s3"}])

        with pytest.raises(DataIntegrityViolation) as exc_info:
            SessionRegistry(store).list_sessions()

        assert exc_info.value.error.details["chunk_id"] == "s3_chunk_0"

    def test_chunks_without_session_are_skipped(self, store):
        store.add(["orphan"], [[1.0, 0.0]], ["orphan"], [{"filename": "C.pdf"}])

        assert len(SessionRegistry(store).list_sessions()) == 2

    def test_delete_session(self, store):
        registry = SessionRegistry(store)

        assert registry.delete_session("s1") == 3
        assert [s.session_id for s in registry.list_sessions()] == ["s2"]

    def test_delete_unknown_session(self, store):
        with pytest.raises(NotFound):
            SessionRegistry(store).delete_session("missing")

    def test_delete_requires_id(self, store):
        with pytest.raises(InvalidInput):
            SessionRegistry(store).delete_session("")

    def test_exists(self, store):
        registry = SessionRegistry(store)

        assert registry.exists("s2")
        assert not registry.exists("missing")

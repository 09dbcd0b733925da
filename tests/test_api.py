"""Integration tests for the HTTP endpoints."""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock, patch
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))


@pytest.fixture
def client():
    """Create a test client with mocked services."""
    # Import after path is set
    from main import app

    # Mock the startup event to avoid initializing real services
    with patch('main.startup_event'):
        client = TestClient(app)

        # Manually set the global services to mocks
        import main
        main.pipeline = Mock()
        main.document_loader = Mock()

        yield client


@pytest.fixture
def answer():
    from models.chunk import RetrievedCandidate, ScoreBreakdown, ScoredChunk
    from models.results import AnswerResult, RetrievalInfo

    chunk = ScoredChunk(
        candidate=RetrievedCandidate(
            chunk_id="s1_chunk_0",
            text="Either party may terminate with 30 days notice.",
            metadata={"session_id": "s1", "filename": "A.pdf", "position": 0},
            distance=0.2
        ),
        scores=ScoreBreakdown(semantic=8.0, bm25=1.234, phrase=5.0, position=3.0, length=0.5, combined=5.1789),
        rank=1
    )
    return AnswerResult(
        answer="Thirty days notice is required.",
        sources=[chunk],
        retrieval_info=RetrievalInfo(
            initial_retrieved=7,
            after_reranking=1,
            documents_searched=1,
            settings={"retrieval_count": 20, "rerank_count": 5, "strategy": "hybrid"}
        )
    )


def error_code(response):
    return response.json()["detail"]["error"]["code"]


class TestAskEndpoint:
    """POST /ask."""

    def test_ask_success(self, client, answer):
        import main
        main.pipeline.answer_question.return_value = answer

        response = client.post("/ask", json={"question": "How can I terminate?", "sessionId": "s1"})

        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == "Thirty days notice is required."
        assert data["sources"][0]["filename"] == "A.pdf"
        assert data["sources"][0]["rank"] == 1
        assert data["sources"][0]["scores"]["bm25"] == 1.23
        assert data["sources"][0]["scores"]["combined"] == 5.18
        assert data["retrieval_info"]["initial_retrieved"] == 7
        assert data["retrieval_info"]["settings"]["strategy"] == "hybrid"
        main.pipeline.answer_question.assert_called_once_with("How can I terminate?", "s1")

    def test_ask_accepts_snake_case_session(self, client, answer):
        import main
        main.pipeline.answer_question.return_value = answer

        client.post("/ask", json={"question": "Q?", "session_id": "s2"})

        main.pipeline.answer_question.assert_called_once_with("Q?", "s2")

    def test_ask_without_session(self, client, answer):
        import main
        main.pipeline.answer_question.return_value = answer

        client.post("/ask", json={"question": "Q?"})

        main.pipeline.answer_question.assert_called_once_with("Q?", None)

    def test_ask_missing_question(self, client):
        import main
        from errors import InvalidInput
        main.pipeline.answer_question.side_effect = InvalidInput("Missing question.")

        response = client.post("/ask", json={})

        assert response.status_code == 400
        assert error_code(response) == "INVALID_INPUT"

    def test_ask_unknown_session(self, client):
        import main
        from errors import NotFound
        main.pipeline.answer_question.side_effect = NotFound("Session not found")

        response = client.post("/ask", json={"question": "Q?", "sessionId": "nope"})

        assert response.status_code == 404

    def test_ask_generation_unavailable(self, client):
        import main
        from errors import GenerationUnavailable
        main.pipeline.answer_question.side_effect = GenerationUnavailable(
            "Request timed out. Please try again.", retryable=True, code="TIMEOUT_ERROR"
        )

        response = client.post("/ask", json={"question": "Q?"})

        assert response.status_code == 503
        error = response.json()["detail"]["error"]
        assert error["code"] == "TIMEOUT_ERROR"
        assert error["retryable"] is True

    def test_ask_unexpected_error(self, client):
        import main
        main.pipeline.answer_question.side_effect = RuntimeError("boom")

        response = client.post("/ask", json={"question": "Q?"})

        assert response.status_code == 500


class TestUploadEndpoint:
    """POST /upload."""

    def test_upload_success(self, client):
        import main
        from models.document import Document
        from models.results import UploadResult
        main.document_loader.extract_text.return_value = Document(filename="A.txt", text="Clause text")
        main.pipeline.process_upload.return_value = UploadResult(session_id="abc", filename="A.txt", chunk_count=1)

        response = client.post("/upload", files={"file": ("A.txt", b"Clause text", "text/plain")})

        assert response.status_code == 200
        assert response.json() == {
            "message": "File uploaded, processed, and stored.",
            "filename": "A.txt",
            "chunk_count": 1,
            "session_id": "abc"
        }
        main.document_loader.extract_text.assert_called_once_with(b"Clause text", "A.txt")
        main.pipeline.process_upload.assert_called_once_with("Clause text", "A.txt")

    def test_upload_without_file(self, client):
        response = client.post("/upload")

        assert response.status_code == 400
        assert error_code(response) == "INVALID_INPUT"

    def test_upload_unsupported_type(self, client):
        import main
        from errors import InvalidInput
        main.document_loader.extract_text.side_effect = InvalidInput("Unsupported file type.")

        response = client.post("/upload", files={"file": ("a.png", b"x", "image/png")})

        assert response.status_code == 400

    def test_upload_index_unavailable(self, client):
        import main
        from errors import IndexUnavailable
        from models.document import Document
        main.document_loader.extract_text.return_value = Document(filename="A.txt", text="Clause text")
        main.pipeline.process_upload.side_effect = IndexUnavailable("Failed to add chunks")

        response = client.post("/upload", files={"file": ("A.txt", b"Clause text", "text/plain")})

        assert response.status_code == 503


class TestSessionEndpoints:
    """GET /sessions, DELETE /session/{id}, POST /analyze."""

    def test_list_sessions(self, client):
        import main
        from models.session import Session
        main.pipeline.list_sessions.return_value = [
            Session(session_id="s1", filename="A.pdf", chunk_count=3),
            Session(session_id="s2", filename="B.pdf", chunk_count=2),
        ]

        response = client.get("/sessions")

        assert response.status_code == 200
        assert response.json() == [
            {"session_id": "s1", "filename": "A.pdf", "chunk_count": 3},
            {"session_id": "s2", "filename": "B.pdf", "chunk_count": 2},
        ]

    def test_list_sessions_integrity_violation(self, client):
        import main
        from errors import DataIntegrityViolation
        main.pipeline.list_sessions.side_effect = DataIntegrityViolation("Conflicting filenames")

        response = client.get("/sessions")

        assert response.status_code == 409

    def test_delete_session(self, client):
        import main
        from models.results import DeleteResult
        main.pipeline.delete_session.return_value = DeleteResult(session_id="s1", deleted_count=3)

        response = client.delete("/session/s1")

        assert response.status_code == 200
        assert response.json()["deleted_count"] == 3
        main.pipeline.delete_session.assert_called_once_with("s1")

    def test_delete_unknown_session(self, client):
        import main
        from errors import NotFound
        main.pipeline.delete_session.side_effect = NotFound("Session not found")

        response = client.delete("/session/nope")

        assert response.status_code == 404
        assert error_code(response) == "NOT_FOUND"

    def test_analyze(self, client):
        import main
        from models.results import Clause, ClauseAnalysis
        main.pipeline.analyze_session.return_value = ClauseAnalysis(
            session_id="s1",
            clauses=[Clause("Termination", "termination", "high", "30 days notice")]
        )

        response = client.post("/analyze", json={"sessionId": "s1"})

        assert response.status_code == 200
        assert response.json()["clauses"][0]["risk_level"] == "high"
        assert response.json()["error"] is None

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

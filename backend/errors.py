"""Error taxonomy for the LegalLens retrieval pipeline."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ErrorInfo:
    """Structured error information carried by every pipeline exception."""
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    retryable: bool = False


class RAGError(Exception):
    """Base exception with structured error information."""

    code = "RAG_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
        code: Optional[str] = None
    ):
        self.error = ErrorInfo(
            code=code or self.code,
            message=message,
            details=details or {},
            retryable=retryable
        )
        super().__init__(message)


class InvalidInput(RAGError, ValueError):
    """Missing question, missing file or unsupported format."""
    code = "INVALID_INPUT"


class NotFound(RAGError):
    """Unknown session id."""
    code = "NOT_FOUND"


class EmbeddingUnavailable(RAGError):
    """Embedding capability failed (transport or model)."""
    code = "EMBEDDING_UNAVAILABLE"


class GenerationUnavailable(RAGError):
    """Generation capability failed (transport or model)."""
    code = "GENERATION_UNAVAILABLE"


class IndexUnavailable(RAGError):
    """Vector index unreachable, misconfigured or a write did not complete."""
    code = "INDEX_UNAVAILABLE"


class DataIntegrityViolation(RAGError):
    """Chunks of one session disagree on their metadata."""
    code = "DATA_INTEGRITY_VIOLATION"

"""Data models for LegalLens RAG."""
from .document import Document
from .chunk import Chunk, IndexedChunk, RetrievedCandidate, ScoreBreakdown, ScoredChunk
from .session import Session
from .sources import LegacySourceString, ScoredSourceRecord, SourceRecord, resolve_source
from .results import (
    UploadResult,
    RetrievalInfo,
    AnswerResult,
    DeleteResult,
    Clause,
    ClauseAnalysis,
)

__all__ = [
    "Document",
    "Chunk",
    "IndexedChunk",
    "RetrievedCandidate",
    "ScoreBreakdown",
    "ScoredChunk",
    "Session",
    "LegacySourceString",
    "ScoredSourceRecord",
    "SourceRecord",
    "resolve_source",
    "UploadResult",
    "RetrievalInfo",
    "AnswerResult",
    "DeleteResult",
    "Clause",
    "ClauseAnalysis",
]

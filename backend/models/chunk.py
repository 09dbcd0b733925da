"""Chunk data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Chunk:
    """A contiguous excerpt of a source document, the unit of indexing."""
    text: str
    position: int  # 0-based emission index within the document
    length: int
    sentence_count: int
    word_count: int


@dataclass
class IndexedChunk:
    """Chunk bound to its session, ready to be written to the vector index."""
    chunk: Chunk
    session_id: str
    filename: str
    embedding: List[float]

    @property
    def chunk_id(self) -> str:
        return f"{self.session_id}_chunk_{self.chunk.position}"

    def metadata(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "filename": self.filename,
            "chunk_index": self.chunk.position,
            "position": self.chunk.position,
            "length": self.chunk.length,
            "sentence_count": self.chunk.sentence_count,
            "word_count": self.chunk.word_count,
        }


@dataclass
class RetrievedCandidate:
    """Candidate returned by nearest-neighbour search."""
    chunk_id: Optional[str]
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    distance: Optional[float] = None  # cosine distance in [0, 2]

    @property
    def filename(self) -> str:
        return self.metadata.get("filename") or "Unknown"

    @property
    def session_id(self) -> Optional[str]:
        return self.metadata.get("session_id")


@dataclass(frozen=True)
class ScoreBreakdown:
    """Individual reranking signals and their weighted combination."""
    semantic: float
    bm25: float
    phrase: float
    position: float
    length: float
    combined: float

    def as_dict(self, digits: int = 2) -> Dict[str, float]:
        return {
            "semantic": round(self.semantic, digits),
            "bm25": round(self.bm25, digits),
            "phrase": round(self.phrase, digits),
            "position": round(self.position, digits),
            "length": round(self.length, digits),
            "combined": round(self.combined, digits),
        }


@dataclass
class ScoredChunk:
    """Candidate with hybrid reranking scores."""
    candidate: RetrievedCandidate
    scores: ScoreBreakdown
    rank: int  # 1-based

    @property
    def text(self) -> str:
        return self.candidate.text

    @property
    def filename(self) -> str:
        return self.candidate.filename

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.candidate.metadata

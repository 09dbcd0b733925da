"""Results returned by the pipeline's exposed operations."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models.chunk import ScoredChunk


@dataclass
class UploadResult:
    session_id: str
    filename: str
    chunk_count: int


@dataclass
class RetrievalInfo:
    initial_retrieved: int
    after_reranking: int
    documents_searched: int
    settings: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AnswerResult:
    answer: str
    sources: List[ScoredChunk]
    retrieval_info: RetrievalInfo

    @property
    def insufficient_context(self) -> bool:
        return not self.sources


@dataclass
class DeleteResult:
    session_id: str
    deleted_count: int


@dataclass
class Clause:
    """A legal clause identified in a document."""
    clause_name: str
    clause_type: str
    risk_level: str
    description: str


@dataclass
class ClauseAnalysis:
    session_id: str
    clauses: List[Clause]
    error: Optional[str] = None

"""Retrieval engine: broad nearest-neighbour recall against the vector index."""
import logging
from typing import List, Optional, Sequence

from config import INITIAL_FETCH
from models.chunk import RetrievedCandidate
from models.sources import resolve_source
from services.vector_store import VectorIndex

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Query the vector index for candidates, optionally scoped to one session."""

    def __init__(self, vector_store: VectorIndex, top_n: int = INITIAL_FETCH):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorIndex used for similarity search
            top_n: Default number of candidates per query
        """
        self.vector_store = vector_store
        self.top_n = top_n
        logger.info("Initialized RetrievalEngine")

    def retrieve(
        self,
        query_vector: Sequence[float],
        scope_session_id: Optional[str] = None,
        top_n: Optional[int] = None
    ) -> List[RetrievedCandidate]:
        """
        Retrieve candidates ordered by ascending cosine distance.

        Args:
            query_vector: Embedding of the question
            scope_session_id: Restrict the search to this session's chunks
            top_n: Number of candidates (defaults to the configured fetch size)

        Returns:
            Candidates, empty if the index holds no eligible chunks
        """
        top_n = self.top_n if top_n is None else top_n
        where = {"session_id": scope_session_id} if scope_session_id else None

        if scope_session_id:
            logger.info(f"Searching in document: {scope_session_id}")
        else:
            logger.info("Searching across all documents")

        rows = self.vector_store.query(query_vector, top_n, where=where)
        candidates = [resolve_source(row).as_candidate() for row in rows]

        if scope_session_id:
            # Guard against backends that ignore the filter
            leaked = [c for c in candidates if c.session_id != scope_session_id]
            if leaked:
                logger.warning(f"Dropping {len(leaked)} candidates outside session {scope_session_id}")
                candidates = [c for c in candidates if c.session_id == scope_session_id]

        logger.info(f"Retrieved {len(candidates)} candidates")
        return candidates

"""Vector index implementations: Supabase pgvector and an in-memory numpy store."""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from supabase import create_client, Client

from errors import IndexUnavailable, InvalidInput
from config import SUPABASE_URL, SUPABASE_KEY, SUPABASE_TABLE, VECTOR_STORE

logger = logging.getLogger(__name__)

# Metadata columns stored next to each chunk
METADATA_COLUMNS = (
    "session_id",
    "filename",
    "chunk_index",
    "position",
    "length",
    "sentence_count",
    "word_count",
)


class VectorIndex(ABC):
    """
    Narrow interface over a vector store.

    Rows returned by ``query`` and ``get`` are plain dicts with ``id``,
    ``text`` and ``metadata`` keys; ``query`` rows also carry ``distance``
    (cosine distance, ascending).
    """

    @abstractmethod
    def add(
        self,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        documents: Sequence[str],
        metadatas: Sequence[Dict[str, Any]]
    ) -> None:
        """Add records as one unit: all become visible or none do."""

    @abstractmethod
    def query(
        self,
        vector: Sequence[float],
        top_n: int,
        where: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Nearest neighbours of vector, optionally filtered by exact metadata match."""

    @abstractmethod
    def get(
        self,
        where: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Records matching the metadata filter (all records when where is None)."""

    @abstractmethod
    def delete(self, ids: Sequence[str]) -> None:
        """Delete records by id."""

    def count(self) -> int:
        return len(self.get())

    @staticmethod
    def _check_add_arguments(ids, vectors, documents, metadatas) -> None:
        if not ids:
            raise InvalidInput("Nothing to add: ids list cannot be empty")
        if not (len(ids) == len(vectors) == len(documents) == len(metadatas)):
            raise InvalidInput(
                "ids, vectors, documents and metadatas must have the same length",
                details={
                    "ids": len(ids),
                    "vectors": len(vectors),
                    "documents": len(documents),
                    "metadatas": len(metadatas)
                }
            )

    @staticmethod
    def _check_top_n(vector, top_n: int) -> None:
        if vector is None or len(vector) == 0:
            raise InvalidInput("Query embedding cannot be empty")
        if top_n <= 0:
            raise InvalidInput("top_n must be positive")


class InMemoryVectorStore(VectorIndex):
    """Brute-force cosine search over vectors held in process memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids: List[str] = []
        self._vectors: List[np.ndarray] = []
        self._documents: List[str] = []
        self._metadatas: List[Dict[str, Any]] = []
        self._dimension: Optional[int] = None
        logger.info("Initialized in-memory VectorStore")

    def add(self, ids, vectors, documents, metadatas) -> None:
        self._check_add_arguments(ids, vectors, documents, metadatas)

        arrays = [np.asarray(vector, dtype=np.float64) for vector in vectors]
        dimensions = {array.shape[0] for array in arrays}
        if len(dimensions) != 1:
            raise IndexUnavailable("Vectors in one batch have different dimensions")

        dimension = dimensions.pop()
        with self._lock:
            if self._dimension is not None and dimension != self._dimension:
                raise IndexUnavailable(
                    "Vector dimension does not match the index",
                    details={"expected": self._dimension, "received": dimension}
                )
            existing = set(self._ids)
            duplicates = [chunk_id for chunk_id in ids if chunk_id in existing]
            if duplicates:
                raise IndexUnavailable(
                    "Records with these ids already exist",
                    details={"ids": duplicates[:10]}
                )

            self._dimension = dimension
            self._ids.extend(ids)
            self._vectors.extend(arrays)
            self._documents.extend(documents)
            self._metadatas.extend(dict(metadata) for metadata in metadatas)

        logger.info(f"Added {len(ids)} records to in-memory vector store")

    def query(self, vector, top_n, where=None) -> List[Dict[str, Any]]:
        self._check_top_n(vector, top_n)
        query_vector = np.asarray(vector, dtype=np.float64)

        with self._lock:
            indices = [i for i, metadata in enumerate(self._metadatas) if _matches(metadata, where)]
            if not indices:
                return []

            if query_vector.shape[0] != self._dimension:
                raise IndexUnavailable(
                    "Query dimension does not match the index",
                    details={"expected": self._dimension, "received": query_vector.shape[0]}
                )

            matrix = np.vstack([self._vectors[i] for i in indices])
            distances = _cosine_distances(matrix, query_vector)
            order = np.argsort(distances, kind="stable")[:top_n]

            return [
                {
                    "id": self._ids[indices[i]],
                    "text": self._documents[indices[i]],
                    "metadata": dict(self._metadatas[indices[i]]),
                    "distance": float(distances[i])
                }
                for i in order
            ]

    def get(self, where=None, limit=None) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [
                {"id": chunk_id, "text": text, "metadata": dict(metadata)}
                for chunk_id, text, metadata in zip(self._ids, self._documents, self._metadatas)
                if _matches(metadata, where)
            ]
        return rows[:limit] if limit is not None else rows

    def delete(self, ids) -> None:
        targets = set(ids)
        with self._lock:
            keep = [i for i, chunk_id in enumerate(self._ids) if chunk_id not in targets]
            self._ids = [self._ids[i] for i in keep]
            self._vectors = [self._vectors[i] for i in keep]
            self._documents = [self._documents[i] for i in keep]
            self._metadatas = [self._metadatas[i] for i in keep]
            if not self._ids:
                self._dimension = None
        logger.info(f"Deleted {len(targets)} records from in-memory vector store")


class SupabaseVectorStore(VectorIndex):
    """Store chunk embeddings and run similarity search using Supabase pgvector."""

    PAGE_SIZE = 1000
    DELETE_BATCH_SIZE = 200

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = SUPABASE_TABLE,
        match_function: str = "match_document_chunks"
    ):
        """
        Initialize the vector store with Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Name of the table to store chunks
            match_function: Name of the pgvector RPC used for search

        Raises:
            IndexUnavailable: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise IndexUnavailable("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.table_name = table_name
        self.match_function = match_function

        # Initialize Supabase client
        self.client: Client = create_client(supabase_url, supabase_key)

        logger.info(f"Initialized SupabaseVectorStore with table: {table_name}")

    def add(self, ids, vectors, documents, metadatas) -> None:
        """
        Insert all records in a single statement.

        PostgREST runs one insert request in one transaction, so a failed
        call leaves none of the rows behind.
        """
        self._check_add_arguments(ids, vectors, documents, metadatas)

        records = []
        for chunk_id, vector, text, metadata in zip(ids, vectors, documents, metadatas):
            record = {"chunk_id": chunk_id, "text": text, "embedding": list(vector)}
            for column in METADATA_COLUMNS:
                record[column] = metadata.get(column)
            records.append(record)

        try:
            self.client.table(self.table_name).insert(records).execute()
        except Exception as e:
            error_msg = f"Failed to add chunks to vector store: {str(e)}"
            logger.error(error_msg)
            raise IndexUnavailable(error_msg, details={"records": len(records)}) from e

        logger.info(f"Successfully added {len(records)} chunks to vector store")

    def query(self, vector, top_n, where=None) -> List[Dict[str, Any]]:
        """
        Find nearest chunks by cosine distance.

        The RPC function should be created in Supabase with:
        CREATE OR REPLACE FUNCTION match_document_chunks(
          query_embedding vector(768),
          match_count int,
          filter_session_id text DEFAULT NULL
        )
        RETURNS TABLE (
          chunk_id text, text text, session_id text, filename text,
          chunk_index int, position int, length int,
          sentence_count int, word_count int, distance float
        )
        LANGUAGE sql STABLE
        AS $$
          SELECT c.chunk_id, c.text, c.session_id, c.filename,
                 c.chunk_index, c.position, c.length,
                 c.sentence_count, c.word_count,
                 c.embedding <=> query_embedding AS distance
          FROM document_chunks c
          WHERE filter_session_id IS NULL OR c.session_id = filter_session_id
          ORDER BY c.embedding <=> query_embedding
          LIMIT match_count;
        $$;
        """
        self._check_top_n(vector, top_n)
        where = where or {}
        unsupported = set(where) - {"session_id"}
        if unsupported:
            raise InvalidInput(
                "Only session_id filters are supported for similarity search",
                details={"keys": sorted(unsupported)}
            )

        try:
            response = self.client.rpc(
                self.match_function,
                {
                    "query_embedding": list(vector),
                    "match_count": top_n,
                    "filter_session_id": where.get("session_id")
                }
            ).execute()
        except Exception as e:
            error_msg = f"Failed to search vector store: {str(e)}"
            logger.error(error_msg)
            raise IndexUnavailable(error_msg) from e

        rows = [self._row_to_record(row, with_distance=True) for row in response.data or []]
        logger.debug(f"Found {len(rows)} chunks for query")
        return rows

    def get(self, where=None, limit=None) -> List[Dict[str, Any]]:
        columns = ",".join(("chunk_id", "text") + METADATA_COLUMNS)
        where = where or {}
        for key in where:
            if key not in METADATA_COLUMNS:
                raise InvalidInput(f"Unknown metadata filter: {key}")
        if limit is not None and limit <= 0:
            return []

        rows: List[Dict[str, Any]] = []
        start = 0
        try:
            while True:
                page_size = self.PAGE_SIZE if limit is None else min(self.PAGE_SIZE, limit - len(rows))
                request = self.client.table(self.table_name).select(columns)
                for key, value in where.items():
                    request = request.eq(key, value)
                response = request.order("chunk_id").range(start, start + page_size - 1).execute()

                batch = response.data or []
                rows.extend(self._row_to_record(row) for row in batch)

                if len(batch) < page_size or (limit is not None and len(rows) >= limit):
                    break
                start += page_size
        except Exception as e:
            error_msg = f"Failed to read from vector store: {str(e)}"
            logger.error(error_msg)
            raise IndexUnavailable(error_msg) from e

        return rows

    def delete(self, ids) -> None:
        ids = list(ids)
        try:
            for i in range(0, len(ids), self.DELETE_BATCH_SIZE):
                batch = ids[i:i + self.DELETE_BATCH_SIZE]
                self.client.table(self.table_name).delete().in_("chunk_id", batch).execute()
        except Exception as e:
            error_msg = f"Failed to delete chunks from vector store: {str(e)}"
            logger.error(error_msg)
            raise IndexUnavailable(error_msg) from e

        logger.info(f"Deleted {len(ids)} chunks from vector store")

    def count(self) -> int:
        """
        Get the total number of chunks in the vector store.

        Raises:
            IndexUnavailable: If database operation fails
        """
        try:
            response = self.client.table(self.table_name).select("chunk_id", count="exact").limit(1).execute()
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count chunks in vector store: {str(e)}"
            logger.error(error_msg)
            raise IndexUnavailable(error_msg) from e

    @staticmethod
    def _row_to_record(row: Dict[str, Any], with_distance: bool = False) -> Dict[str, Any]:
        record = {
            "id": row["chunk_id"],
            "text": row["text"],
            "metadata": {column: row.get(column) for column in METADATA_COLUMNS if row.get(column) is not None},
        }
        if with_distance:
            record["distance"] = row.get("distance")
        return record


def create_vector_store(backend: str = VECTOR_STORE) -> VectorIndex:
    """Build the configured vector index backend."""
    if backend == "supabase":
        return SupabaseVectorStore()
    if backend == "memory":
        return InMemoryVectorStore()
    raise IndexUnavailable(f"Unknown vector store backend: {backend}")


def _matches(metadata: Dict[str, Any], where: Optional[Dict[str, Any]]) -> bool:
    if not where:
        return True
    return all(metadata.get(key) == value for key, value in where.items())


def _cosine_distances(matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(vector)
    dots = matrix @ vector
    similarities = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
    return np.clip(1.0 - similarities, 0.0, 2.0)

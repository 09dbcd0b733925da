"""Session registry derived from vector index metadata."""
import logging
from typing import Dict, List

from errors import DataIntegrityViolation, InvalidInput, NotFound
from models.session import Session
from services.vector_store import VectorIndex

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Lists and deletes uploaded documents by aggregating chunk metadata."""

    def __init__(self, vector_store: VectorIndex):
        self.vector_store = vector_store

    def list_sessions(self) -> List[Session]:
        """
        Group every indexed chunk by session id.

        Returns:
            One Session per session id, in first-seen order

        Raises:
            DataIntegrityViolation: If a chunk has no filename or chunks of one
                session disagree on it
        """
        filenames: Dict[str, str] = {}
        counts: Dict[str, int] = {}

        for record in self.vector_store.get():
            metadata = record.get("metadata") or {}
            session_id = metadata.get("session_id")
            if not session_id:
                logger.warning(f"Chunk {record.get('id')} has no session_id; skipping")
                continue

            filename = metadata.get("filename")
            if not filename:
                raise DataIntegrityViolation(
                    f"Chunk {record.get('id')} of session {session_id} has no filename",
                    details={"session_id": session_id, "chunk_id": record.get("id")}
                )

            if session_id not in filenames:
                filenames[session_id] = filename
                counts[session_id] = 0
            elif filenames[session_id] != filename:
                raise DataIntegrityViolation(
                    f"Session {session_id} has chunks with different filenames",
                    details={
                        "session_id": session_id,
                        "filenames": sorted(str(f) for f in {filenames[session_id], filename})
                    }
                )
            counts[session_id] += 1

        sessions = [
            Session(session_id=session_id, filename=filenames[session_id], chunk_count=counts[session_id])
            for session_id in filenames
        ]
        logger.info(f"Found {len(sessions)} sessions")
        return sessions

    def exists(self, session_id: str) -> bool:
        return bool(self.vector_store.get(where={"session_id": session_id}, limit=1))

    def delete_session(self, session_id: str) -> int:
        """
        Delete every chunk of a session.

        Returns:
            Number of chunks deleted

        Raises:
            InvalidInput: If session_id is empty
            NotFound: If no chunk belongs to the session
        """
        if not session_id:
            raise InvalidInput("Missing session ID.")

        records = self.vector_store.get(where={"session_id": session_id})
        if not records:
            raise NotFound("Session not found", details={"session_id": session_id})

        ids = [record["id"] for record in records]
        self.vector_store.delete(ids)
        logger.info(f"Deleted {len(ids)} chunks for session {session_id}")
        return len(ids)

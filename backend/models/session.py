"""Session data models."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    """One uploaded document, derived from the chunks that share its id."""
    session_id: str
    filename: str
    chunk_count: int

"""Source records crossing the retrieval/reranking boundary.

Rows coming back from a vector index are either bare document strings
(older records written without metadata) or full records carrying
metadata and a distance. ``resolve_source`` turns either shape into a
tagged variant once, so nothing downstream has to inspect raw rows.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from errors import InvalidInput
from models.chunk import RetrievedCandidate


@dataclass(frozen=True)
class LegacySourceString:
    """Bare excerpt text with no metadata or distance."""
    text: str

    def as_candidate(self) -> RetrievedCandidate:
        return RetrievedCandidate(chunk_id=None, text=self.text, metadata={}, distance=None)


@dataclass(frozen=True)
class ScoredSourceRecord:
    """Excerpt with id, metadata and cosine distance from the index."""
    text: str
    chunk_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    distance: Optional[float] = None

    def as_candidate(self) -> RetrievedCandidate:
        return RetrievedCandidate(
            chunk_id=self.chunk_id,
            text=self.text,
            metadata=dict(self.metadata),
            distance=self.distance
        )


SourceRecord = Union[LegacySourceString, ScoredSourceRecord]


def resolve_source(raw: Any) -> SourceRecord:
    """
    Resolve a raw index row into a typed source record.

    Args:
        raw: A plain string, or a mapping with ``text`` (or ``document``),
             and optionally ``id``/``chunk_id``, ``metadata`` and ``distance``

    Returns:
        LegacySourceString or ScoredSourceRecord

    Raises:
        InvalidInput: If the row has neither shape
    """
    if isinstance(raw, (LegacySourceString, ScoredSourceRecord)):
        return raw

    if isinstance(raw, str):
        return LegacySourceString(text=raw)

    if isinstance(raw, Mapping):
        text = raw.get("text", raw.get("document"))
        if not isinstance(text, str):
            raise InvalidInput(
                "Source record has no text",
                details={"keys": sorted(str(k) for k in raw.keys())}
            )
        distance = raw.get("distance")
        return ScoredSourceRecord(
            text=text,
            chunk_id=raw.get("chunk_id", raw.get("id")),
            metadata=dict(raw.get("metadata") or {}),
            distance=float(distance) if distance is not None else None
        )

    raise InvalidInput(
        "Unsupported source record",
        details={"type": type(raw).__name__}
    )

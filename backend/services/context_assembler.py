"""Context assembly: turn reranked chunks into a bounded, source-tagged prompt context."""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from config import MAX_CONTEXT_CHARS
from models.chunk import ScoredChunk

logger = logging.getLogger(__name__)

SEPARATOR = "\n\n---\n\n"


@dataclass
class AssembledContext:
    context_text: str
    grouped_by_document: Dict[str, List[str]] = field(default_factory=dict)
    chunks: List[ScoredChunk] = field(default_factory=list)

    @property
    def chunks_used(self) -> int:
        return len(self.chunks)

    @property
    def document_count(self) -> int:
        return len(self.grouped_by_document)


class ContextAssembler:
    """Concatenate chunks in reranked order, each tagged with its source file."""

    def __init__(self, max_chars: int = MAX_CONTEXT_CHARS):
        self.max_chars = max_chars

    def assemble(self, scored_chunks: Sequence[ScoredChunk]) -> AssembledContext:
        """
        Build the prompt context.

        Chunks that would push the context past ``max_chars`` are skipped and
        later, smaller chunks may still fit. The first chunk is always kept,
        truncated if it alone is too long.

        Args:
            scored_chunks: Reranked chunks, best first

        Returns:
            AssembledContext with the text and the chunks actually included
        """
        blocks: List[str] = []
        included: List[ScoredChunk] = []
        grouped: Dict[str, List[str]] = {}
        total = 0

        for chunk in scored_chunks:
            block = f"[Source: {chunk.filename}]\n{chunk.text}"
            added = len(block) + (len(SEPARATOR) if blocks else 0)

            if total + added > self.max_chars:
                if blocks:
                    logger.debug(f"Skipping chunk ranked {chunk.rank}: context bound reached")
                    continue
                block = block[:self.max_chars]
                added = len(block)

            blocks.append(block)
            included.append(chunk)
            grouped.setdefault(chunk.filename, []).append(chunk.text)
            total += added

        context = AssembledContext(
            context_text=SEPARATOR.join(blocks),
            grouped_by_document=grouped,
            chunks=included
        )
        logger.debug(
            f"Assembled context: {context.chunks_used} chunks from "
            f"{context.document_count} documents, {len(context.context_text)} chars"
        )
        return context

"""Chunking engine with recursive separator splitting and sliding-window overlap."""
import logging
import re
from typing import List, Optional, Sequence

from models.chunk import Chunk
from errors import InvalidInput
from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)

_SENTENCE_BOUNDARY = re.compile(r"\.(?=\s|$)|[!?]+")


class ChunkingEngine:
    """Segments document text into overlapping, separator-bounded chunks."""

    # Separators for recursive splitting (in priority order)
    DEFAULT_SEPARATORS = ("\n\n", "\n", ". ", " ", "")

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        separators: Sequence[str] = DEFAULT_SEPARATORS
    ):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Maximum chunk size in characters
            chunk_overlap: Characters carried from one chunk into the next
            separators: Split points, highest priority first
        """
        self._validate(chunk_size, chunk_overlap)
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = list(separators)

    def chunk(
        self,
        text: str,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None
    ) -> List[Chunk]:
        """
        Split text into ordered chunks.

        Every chunk after the first starts with the last ``overlap``
        characters of the previous one, and nothing is trimmed, so dropping
        that prefix from each later chunk and concatenating reproduces the
        input exactly, apart from windows made only of whitespace. Those are
        dropped and the remaining chunks are numbered contiguously.

        Args:
            text: Raw document text
            chunk_size: Override for the configured chunk size
            overlap: Override for the configured overlap

        Returns:
            Chunks with position, length, sentence and word counts.
            Empty or whitespace-only text yields an empty list.

        Raises:
            InvalidInput: If chunk_size/overlap are inconsistent
        """
        chunk_size = self.chunk_size if chunk_size is None else chunk_size
        overlap = self.chunk_overlap if overlap is None else overlap
        self._validate(chunk_size, overlap)

        if not text or not text.strip():
            logger.info("No content to chunk")
            return []

        if len(text) <= chunk_size:
            windows = [text]
        else:
            pieces = self._recursive_split(text, self.separators, chunk_size - overlap)
            windows = self._merge(pieces, chunk_size, overlap)

        # Long whitespace runs can fill a whole window; those carry no content
        windows = [window for window in windows if window.strip()]
        chunks = [self._build_chunk(window, position) for position, window in enumerate(windows)]

        logger.info(
            f"Created {len(chunks)} chunks from {len(text)} characters "
            f"(size={chunk_size}, overlap={overlap})"
        )
        return chunks

    @staticmethod
    def _validate(chunk_size: int, overlap: int) -> None:
        if chunk_size <= 0:
            raise InvalidInput("chunk_size must be positive", details={"chunk_size": chunk_size})
        if overlap < 0 or overlap >= chunk_size:
            raise InvalidInput(
                "overlap must be non-negative and smaller than chunk_size",
                details={"chunk_size": chunk_size, "overlap": overlap}
            )

    def _recursive_split(self, text: str, separators: List[str], max_length: int) -> List[str]:
        """
        Split text into pieces no longer than max_length.

        Tries each separator in order; pieces that are still too long are
        re-split with the remaining, lower-priority separators. Separators
        stay attached to the end of the piece they close.

        Args:
            text: Text to split
            separators: Remaining separators in priority order
            max_length: Upper bound for every returned piece

        Returns:
            Pieces whose concatenation equals text
        """
        if len(text) <= max_length:
            return [text]

        for index, separator in enumerate(separators):
            if separator == "":
                # Character-level fallback
                return list(text)

            if separator in text:
                pieces = []
                for part in self._split_keeping_separator(text, separator):
                    if len(part) <= max_length:
                        pieces.append(part)
                    else:
                        pieces.extend(self._recursive_split(part, separators[index + 1:], max_length))
                return pieces

        # No separator applies; cut hard
        return [text[i:i + max_length] for i in range(0, len(text), max_length)]

    @staticmethod
    def _split_keeping_separator(text: str, separator: str) -> List[str]:
        parts = text.split(separator)
        pieces = [part + separator for part in parts[:-1]]
        if parts[-1]:
            pieces.append(parts[-1])
        return pieces

    @staticmethod
    def _merge(pieces: List[str], chunk_size: int, overlap: int) -> List[str]:
        """
        Greedily merge pieces into windows of at most chunk_size characters.

        Each emitted window's last ``overlap`` characters seed the next one.
        Pieces are at most ``chunk_size - overlap`` long, so a seeded window
        always has room for at least one new piece.
        """
        windows: List[str] = []
        buffer: List[str] = []
        buffer_length = 0
        has_new_content = False

        for piece in pieces:
            if has_new_content and buffer_length + len(piece) > chunk_size:
                window = "".join(buffer)
                windows.append(window)

                carry = window[-overlap:] if overlap else ""
                buffer = [carry] if carry else []
                buffer_length = len(carry)
                has_new_content = False

            buffer.append(piece)
            buffer_length += len(piece)
            has_new_content = True

        if has_new_content:
            windows.append("".join(buffer))

        return windows

    @staticmethod
    def _build_chunk(text: str, position: int) -> Chunk:
        return Chunk(
            text=text,
            position=position,
            length=len(text),
            sentence_count=len(_SENTENCE_BOUNDARY.findall(text)),
            word_count=len(text.split())
        )

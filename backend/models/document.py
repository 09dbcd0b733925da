"""Document data models."""
from dataclasses import dataclass


@dataclass
class Document:
    """Plain text extracted from an uploaded file."""
    filename: str
    text: str
    page_count: int = 1

    @property
    def char_count(self) -> int:
        return len(self.text)

"""Data class representing a chunk of a knowledge document."""

from dataclasses import dataclass


@dataclass(frozen=True)
class KnowledgeChunk:
    """A fixed-size window of text taken from a knowledge file.

    Attributes:
        content: Text content of the chunk
        source: File name the chunk was cut from
        index: Position of the chunk within its source file
    """

    content: str
    source: str
    index: int

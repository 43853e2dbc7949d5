"""Knowledge retrieval used to add context to chat prompts.

Markdown files from the knowledge directory are split into overlapping
fixed-size chunks and indexed with BM25. The chat service asks for the
top matches of each user message and pastes them into the system prompt.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import bm25s  # type: ignore

from chatrelay.conf.config import Config
from chatrelay.src.data_classes.knowledge_chunk import KnowledgeChunk

logger = logging.getLogger(__name__)


def split_into_chunks(text: str, chunk_size: int, overlap: int) -> List[str]:
    """Split text into fixed-size windows that overlap by ``overlap`` characters.

    Args:
        text: Text to split
        chunk_size: Maximum characters per chunk
        overlap: Characters shared by consecutive chunks

    Returns:
        List of chunks covering the whole text

    Raises:
        ValueError: If overlap is not smaller than chunk_size
    """
    if overlap >= chunk_size:
        raise ValueError("Chunk overlap must be smaller than the chunk size")

    chunks: List[str] = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunks.append(text[start:end])
        if end == len(text):
            break
        start += chunk_size - overlap
    return chunks


class RetrievalService:
    """BM25 retrieval over a small corpus of knowledge chunks.

    Attributes:
        chunks: Indexed knowledge chunks
        indexed (bool): Whether an index has been built
    """

    def __init__(self, stopwords: Optional[str] = None) -> None:
        """Initialize an empty retrieval service.

        Args:
            stopwords: Stopword language passed to the BM25 tokenizer
        """
        self.stopwords = stopwords or Config.RETRIEVAL_STOPWORDS
        self.retriever = bm25s.BM25()  # type: ignore
        self.chunks: List[KnowledgeChunk] = []
        self._indexed = False

    @property
    def indexed(self) -> bool:
        return self._indexed

    @classmethod
    def from_directory(
        cls,
        knowledge_dir: Union[str, Path],
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None,
    ) -> "RetrievalService":
        """Build a retrieval service from the markdown files in a directory.

        Args:
            knowledge_dir: Directory holding ``*.md`` files
            chunk_size: Characters per chunk; defaults to Config.CHUNK_SIZE
            overlap: Overlap between chunks; defaults to Config.CHUNK_OVERLAP

        Returns:
            Indexed retrieval service (possibly with an empty corpus)
        """
        service = cls()
        service.index(
            load_knowledge_chunks(
                Path(knowledge_dir),
                chunk_size or Config.CHUNK_SIZE,
                Config.CHUNK_OVERLAP if overlap is None else overlap,
            )
        )
        return service

    def index(self, chunks: List[KnowledgeChunk]) -> None:
        """Index knowledge chunks with BM25.

        Args:
            chunks: Chunks to index
        """
        self.chunks = list(chunks)
        if not self.chunks:
            logger.warning("No knowledge chunks provided for indexing")
            self._indexed = True
            return

        corpus_tokens = bm25s.tokenize(  # type: ignore
            [chunk.content for chunk in self.chunks],
            stopwords=self.stopwords,
            show_progress=False,
        )
        self.retriever.index(corpus_tokens, show_progress=False)  # type: ignore
        self._indexed = True
        logger.info(f"BM25 indexing complete for {len(self.chunks)} knowledge chunks")

    def top_matches(self, query: str, k: int) -> List[str]:
        """Return the text of the ``k`` chunks that best match the query.

        Args:
            query: User message
            k: Maximum number of snippets

        Returns:
            Snippets ordered from best to worst match; empty if nothing is indexed
        """
        if not self._indexed or not self.chunks or not query.strip() or k <= 0:
            return []

        query_tokens = bm25s.tokenize(  # type: ignore
            [query], stopwords=self.stopwords, show_progress=False
        )
        k = min(k, len(self.chunks))
        try:
            indices, _scores = self.retriever.retrieve(  # type: ignore
                query_tokens, k=k, show_progress=False
            )
        except ValueError as e:
            # Raised for queries with no tokens in the index vocabulary
            logger.warning(f"BM25 retrieval skipped: {str(e)}")
            return []
        return [self.chunks[int(idx)].content for idx in indices[0]]


def load_knowledge_chunks(
    knowledge_dir: Path, chunk_size: int, overlap: int
) -> List[KnowledgeChunk]:
    """Read every markdown file in a directory and cut it into chunks.

    Args:
        knowledge_dir: Directory holding ``*.md`` files
        chunk_size: Characters per chunk
        overlap: Overlap between consecutive chunks

    Returns:
        Chunks from all files, in file-name order
    """
    if not knowledge_dir.is_dir():
        logger.warning(f"Knowledge directory not found: {knowledge_dir}")
        return []

    files = sorted(knowledge_dir.glob("*.md"))
    chunks: List[KnowledgeChunk] = []
    for path in files:
        content = path.read_text(encoding="utf-8")
        for i, piece in enumerate(split_into_chunks(content, chunk_size, overlap)):
            chunks.append(KnowledgeChunk(content=piece, source=path.name, index=i))

    logger.info(f"Loaded {len(chunks)} knowledge chunks from {len(files)} files")
    return chunks

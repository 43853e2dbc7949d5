"""Retrieval package for knowledge lookup.

The main interface is the RetrievalService class, which indexes the markdown
knowledge files and returns the best-matching snippets for a query.
"""

from .retrieval_service import RetrievalService, load_knowledge_chunks, split_into_chunks

__all__ = [
    "RetrievalService",
    "load_knowledge_chunks",
    "split_into_chunks",
]

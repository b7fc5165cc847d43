"""Knowledge retrieval module."""

from .knowledge_base import (
    Document,
    IKnowledgeBase,
    NullKnowledgeBase,
    SQLiteKnowledgeBase,
    split_into_chunks,
)

__all__ = [
    "Document",
    "IKnowledgeBase",
    "NullKnowledgeBase",
    "SQLiteKnowledgeBase",
    "split_into_chunks",
]

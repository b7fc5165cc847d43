"""Knowledge retrieval adapters exposed to workers as retrieve_context()."""

import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import PathLike, resolve_db_path
from ..logging_config import get_logger

logger = get_logger(__name__)

_WORD = re.compile(r"\w+", re.UNICODE)

DOCUMENT_SUFFIXES = (".md", ".txt")
MAX_CHUNK_CHARS = 1000

KNOWLEDGE_SCHEMA = """
CREATE VIRTUAL TABLE IF NOT EXISTS knowledge_fts USING fts5(
    doc_id UNINDEXED,
    source UNINDEXED,
    content,
    tokenize='porter unicode61 remove_diacritics 2'
);
"""


class IKnowledgeBase(Protocol):
    """Read-only access to background knowledge."""

    async def retrieve_context(self, query: str) -> str:
        """Relevant text for query, or "" when nothing relevant exists."""
        ...


class NullKnowledgeBase:
    """Knowledge base with no documents."""

    async def retrieve_context(self, query: str) -> str:
        return ""


@dataclass
class Document:
    """A retrievable chunk of text."""

    content: str
    source: str = "unknown source"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


def split_into_chunks(text: str, max_chars: int = MAX_CHUNK_CHARS) -> list[str]:
    """Group blank-line separated paragraphs into chunks of at most max_chars.

    A single paragraph longer than max_chars becomes its own chunk.
    """
    chunks: list[str] = []
    current = ""
    for paragraph in re.split(r"\n\s*\n", text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        if current and len(current) + len(paragraph) + 2 > max_chars:
            chunks.append(current)
            current = paragraph
        else:
            current = f"{current}\n\n{paragraph}" if current else paragraph
    if current:
        chunks.append(current)
    return chunks


def match_expression(query: str) -> str:
    """OR of quoted query terms; quoting keeps FTS5 operators out of user text."""
    terms = dict.fromkeys(word.lower() for word in _WORD.findall(query or ""))
    return " OR ".join(f'"{term}"' for term in terms)


class SQLiteKnowledgeBase:
    """Full-text retrieval over SQLite FTS5, ranked by bm25."""

    def __init__(self, db_path: PathLike | None = None, top_k: int = 3):
        self._db_path = resolve_db_path(db_path)
        self._top_k = top_k
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.executescript(KNOWLEDGE_SCHEMA)
        await self._conn.commit()

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Knowledge base not initialized")
        return self._conn

    async def add_documents(self, documents: list[Document]) -> int:
        conn = self._require_conn()
        await conn.executemany(
            "INSERT INTO knowledge_fts (doc_id, source, content) VALUES (?, ?, ?)",
            [(doc.id, doc.source, doc.content) for doc in documents],
        )
        await conn.commit()
        logger.info("Indexed %d knowledge documents", len(documents))
        return len(documents)

    async def load_directory(self, directory: PathLike) -> int:
        """Index every .md/.txt file under directory, chunked by paragraph."""
        root = Path(directory)
        if not root.is_dir():
            logger.warning("Knowledge directory not found: %s", root)
            return 0

        documents = []
        for path in sorted(p for p in root.rglob("*") if p.suffix.lower() in DOCUMENT_SUFFIXES):
            text = path.read_text(encoding="utf-8")
            documents.extend(
                Document(content=chunk, source=path.name) for chunk in split_into_chunks(text)
            )

        if not documents:
            return 0
        return await self.add_documents(documents)

    async def count(self) -> int:
        conn = self._require_conn()
        async with conn.execute("SELECT COUNT(*) FROM knowledge_fts") as cursor:
            row = await cursor.fetchone()
        return row[0]

    async def clear(self) -> None:
        conn = self._require_conn()
        await conn.execute("DELETE FROM knowledge_fts")
        await conn.commit()

    async def search(self, query: str, limit: int | None = None) -> list[Document]:
        """Best matching documents first. Empty for queries without words."""
        expression = match_expression(query)
        if not expression:
            return []

        conn = self._require_conn()
        async with conn.execute(
            """
            SELECT doc_id, source, content, bm25(knowledge_fts) AS score
            FROM knowledge_fts
            WHERE knowledge_fts MATCH ?
            ORDER BY score
            LIMIT ?
            """,
            (expression, limit or self._top_k),
        ) as cursor:
            rows = await cursor.fetchall()

        return [Document(id=row[0], source=row[1], content=row[2]) for row in rows]

    async def retrieve_context(self, query: str) -> str:
        documents = await self.search(query)
        return "\n\n---\n\n".join(f"[Source: {doc.source}]\n{doc.content}" for doc in documents)

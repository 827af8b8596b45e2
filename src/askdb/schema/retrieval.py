"""Embedding-based table retrieval.

Large schemas do not fit a prompt. The retriever embeds each table's schema
text per connection and, for a question, returns the tables whose text is
most similar to it. A connection is re-indexed whenever its introspected
schema text changes; only new or changed tables are embedded again.
"""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict
from dataclasses import dataclass

from askdb.core.types import TableMetadata
from askdb.embeddings.provider import EmbeddingProvider
from askdb.query.context import generate_schema_text

logger = logging.getLogger(__name__)


@dataclass
class TableMatch:
    """A table ranked against a question."""

    table_name: str
    score: float
    schema_text: str


@dataclass
class _ConnectionIndex:
    fingerprint: str
    entries: list[tuple[str, str, list[float]]]


def schema_fingerprint(texts: list[str]) -> str:
    """Order-independent digest of a connection's schema texts."""
    digest = hashlib.sha256()
    for schema_text in sorted(texts):
        digest.update(schema_text.encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


class SchemaRetriever:
    """In-memory per-connection index of table embeddings.

    At most ``max_connections`` connections are kept; the least recently
    used one is dropped first.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        top_k: int = 5,
        max_connections: int = 32,
    ) -> None:
        self._provider = embedding_provider
        self._top_k = top_k
        self._max_connections = max_connections
        self._index: OrderedDict[str, _ConnectionIndex] = OrderedDict()

    def __len__(self) -> int:
        return len(self._index)

    def is_indexed(self, connection_id: str) -> bool:
        return connection_id in self._index

    def is_current(self, connection_id: str, tables: list[TableMetadata]) -> bool:
        """Whether the stored index matches these tables exactly."""
        entry = self._index.get(connection_id)
        if entry is None:
            return False
        texts = [generate_schema_text(table) for table in tables]
        return entry.fingerprint == schema_fingerprint(texts)

    def clear(self, connection_id: str | None = None) -> None:
        """Drop one connection's index, or all of them."""
        if connection_id is None:
            self._index.clear()
        else:
            self._index.pop(connection_id, None)

    async def index(self, connection_id: str, tables: list[TableMetadata]) -> int:
        """Embed and store every table's schema text, replacing earlier entries.

        Embeddings already held for an identical schema text are reused.

        Returns:
            Number of tables whose text was embedded
        """
        texts = [generate_schema_text(table) for table in tables]
        previous = self._index.get(connection_id)
        known = {text: emb for _, text, emb in previous.entries} if previous else {}

        missing = [text for text in dict.fromkeys(texts) if text not in known]
        if missing:
            embeddings = await self._provider.embed_batch(missing)
            known.update(zip(missing, embeddings, strict=True))

        self._store(
            connection_id,
            _ConnectionIndex(
                fingerprint=schema_fingerprint(texts),
                entries=[
                    (table.table_name, text, known[text])
                    for table, text in zip(tables, texts, strict=True)
                ],
            ),
        )
        logger.info(
            f"Indexed {len(tables)} tables for connection {connection_id} "
            f"({len(missing)} embedded with {self._provider.model_name})"
        )
        return len(missing)

    async def ensure_indexed(self, connection_id: str, tables: list[TableMetadata]) -> bool:
        """Index the tables unless the stored index already matches them.

        Returns:
            True if the connection was (re-)indexed
        """
        if self.is_current(connection_id, tables):
            self._index.move_to_end(connection_id)
            return False
        if self.is_indexed(connection_id):
            logger.info(f"Schema changed for connection {connection_id}, re-indexing")
        await self.index(connection_id, tables)
        return True

    async def find_similar(
        self, question: str, connection_id: str, limit: int | None = None
    ) -> list[TableMatch]:
        """Rank the connection's tables by similarity to a question.

        Args:
            question: Natural-language question
            connection_id: Connection whose index to search
            limit: Maximum number of tables; defaults to ``top_k``

        Returns:
            Matches, most similar first; empty if the connection is not indexed
        """
        entry = self._index.get(connection_id)
        if entry is None or not entry.entries:
            return []
        self._index.move_to_end(connection_id)

        query_embedding = await self._provider.embed(question)
        matches = [
            TableMatch(
                table_name=name,
                score=self._cosine_similarity(query_embedding, embedding),
                schema_text=schema_text,
            )
            for name, schema_text, embedding in entry.entries
        ]
        matches.sort(key=lambda m: -m.score)
        return matches[: limit or self._top_k]

    def _store(self, connection_id: str, entry: _ConnectionIndex) -> None:
        self._index[connection_id] = entry
        self._index.move_to_end(connection_id)
        while len(self._index) > self._max_connections:
            evicted, _ = self._index.popitem(last=False)
            logger.debug(f"Evicted schema index for connection {evicted}")

    def _cosine_similarity(self, a: list[float], b: list[float]) -> float:
        """Compute cosine similarity between two vectors."""
        dot_product = sum(x * y for x, y in zip(a, b, strict=True))
        norm_a = sum(x * x for x in a) ** 0.5
        norm_b = sum(x * x for x in b) ** 0.5
        if norm_a == 0 or norm_b == 0:
            return 0.0
        similarity: float = dot_product / (norm_a * norm_b)
        return similarity

# ragchat/services/retrieval_service.py
import logging
from typing import Dict, List, Optional

import numpy as np
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ragchat import models
from ragchat.core.config import settings
from ragchat.services.embedding_service import EmbeddingService

logger = logging.getLogger(__name__)

CONTEXT_HEADER = "You have access to the following relevant information from the user's documents:"
CONTEXT_FOOTER = (
    "Please use this information to answer the user's question. "
    "If the information is not relevant, you can ignore it."
)


class RetrievalService:
    """Vector store over the ``embeddings`` table.

    Similarity search runs in PostgreSQL through pgvector's cosine distance
    operator. Other dialects (SQLite in tests) rank the candidate rows in
    NumPy, which gives the same ordering.
    """

    def __init__(self, db: Session, embedding_service: EmbeddingService = None):
        self.db = db
        self.embedding_service = embedding_service or EmbeddingService()

    def store_embeddings(self, document: models.Document, chunks: List[str]) -> int:
        """Embed ``chunks`` and persist them with their position as chunk index."""
        if not chunks:
            return 0
        vectors = self.embedding_service.create_embeddings_for_chunks(chunks)
        for index, (chunk, vector) in enumerate(zip(chunks, vectors)):
            self.db.add(models.Embedding(
                document_id=document.id,
                chunk_index=index,
                chunk_text=chunk,
                vector=vector,
            ))
        self.db.flush()
        return len(chunks)

    def visible_documents(self, chat_id: int) -> Dict[int, str]:
        """Documents a chat may retrieve from: its own plus every global one.

        Returns ``{document_id: filename}``.
        """
        rows = (
            self.db.query(models.Document.id, models.Document.filename)
            .filter(
                or_(
                    models.Document.chats.any(models.Chat.id == chat_id),
                    ~models.Document.chats.any(),
                )
            )
            .all()
        )
        return {doc_id: filename for doc_id, filename in rows}

    def _cos_similarities(self, query_vector, vectors) -> List[float]:
        a = np.asarray(vectors, dtype=np.float64)
        q = np.asarray(query_vector, dtype=np.float64)
        a_norms = np.linalg.norm(a, axis=1, keepdims=True)
        a_norms[a_norms == 0] = 1.0
        q_norm = np.linalg.norm(q) or 1.0
        return ((a / a_norms) @ (q / q_norm)).tolist()

    def _search_pgvector(self, q_vec, doc_ids, top_k):
        distance = models.Embedding.vector.cosine_distance(q_vec).label("distance")
        rows = (
            self.db.query(models.Embedding, distance)
            .filter(models.Embedding.document_id.in_(doc_ids))
            .order_by(distance)
            .limit(top_k)
            .all()
        )
        return [(emb, 1.0 - float(dist)) for emb, dist in rows]

    def _search_in_memory(self, q_vec, doc_ids, top_k):
        embeddings = (
            self.db.query(models.Embedding)
            .filter(models.Embedding.document_id.in_(doc_ids))
            .order_by(models.Embedding.id)
            .all()
        )
        if not embeddings:
            return []
        sims = self._cos_similarities(q_vec, [e.vector for e in embeddings])
        top_idx = sorted(range(len(sims)), key=lambda i: sims[i], reverse=True)[:top_k]
        return [(embeddings[i], sims[i]) for i in top_idx]

    def search_similar_chunks(self, query: str, chat_id: int, top_k: Optional[int] = None) -> List[dict]:
        top_k = top_k or settings.RETRIEVAL_TOP_K
        filenames = self.visible_documents(chat_id)
        if not filenames:
            return []

        q_vec = self.embedding_service.create_embedding(query)
        doc_ids = list(filenames)
        if self.db.get_bind().dialect.name == "postgresql":
            ranked = self._search_pgvector(q_vec, doc_ids, top_k)
        else:
            ranked = self._search_in_memory(q_vec, doc_ids, top_k)

        logger.info("Chat %s: %d chunks retrieved from %d visible documents", chat_id, len(ranked), len(doc_ids))
        return [
            {
                "id": emb.id,
                "chunk_text": emb.chunk_text,
                "chunk_index": emb.chunk_index,
                "document_id": emb.document_id,
                "filename": filenames.get(emb.document_id, "Unknown"),
                "similarity": similarity,
            }
            for emb, similarity in ranked
        ]


def format_context_for_llm(chunks: List[dict]) -> str:
    """Render retrieved chunks as a system-message prefix.

    Chunks are grouped by filename (groups keep first-hit order) and each
    group is put back in document order by chunk index.
    """
    if not chunks:
        return ""

    by_document: Dict[str, List[dict]] = {}
    for chunk in chunks:
        by_document.setdefault(chunk["filename"], []).append(chunk)

    parts = [CONTEXT_HEADER, ""]
    for filename, doc_chunks in by_document.items():
        parts.append(f"## From: {filename}")
        parts.append("")
        for chunk in sorted(doc_chunks, key=lambda c: c["chunk_index"]):
            parts.append(chunk["chunk_text"])
            parts.append("")
        parts.append("---")
        parts.append("")

    parts.append(CONTEXT_FOOTER)
    return "\n".join(parts)

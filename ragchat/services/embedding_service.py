# ragchat/services/embedding_service.py
import logging
from typing import List

from ragchat.core.config import settings
from ragchat.services import openai_client

logger = logging.getLogger(__name__)


class EmbeddingService:
    def __init__(self, model: str = None, dimensions: int = None, batch_size: int = None):
        self.model = model or settings.EMBEDDING_MODEL
        self.dimensions = dimensions or settings.EMBEDDING_DIMENSIONS
        self.batch_size = batch_size or settings.EMBEDDING_BATCH_SIZE

    def _embed(self, inputs: List[str]) -> List[List[float]]:
        resp = openai_client.get_client().embeddings.create(
            model=self.model,
            input=inputs,
            dimensions=self.dimensions,
        )
        # the API may return items out of order; index is authoritative
        data = sorted(resp.data, key=lambda d: d.index)
        return [d.embedding for d in data]

    def create_embedding(self, text: str) -> List[float]:
        return self._embed([text])[0]

    def create_embeddings_for_chunks(self, chunks: List[str]) -> List[List[float]]:
        vectors = []
        for start in range(0, len(chunks), self.batch_size):
            batch = chunks[start:start + self.batch_size]
            vectors.extend(self._embed(batch))
        logger.debug("Embedded %d chunks with %s", len(chunks), self.model)
        return vectors

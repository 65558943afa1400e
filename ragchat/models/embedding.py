# ragchat/models/embedding.py
from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, Integer, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from ragchat.core.config import settings
from ragchat.db.base import Base


class Embedding(Base):
    __tablename__ = "embeddings"
    __table_args__ = (
        UniqueConstraint("document_id", "chunk_index", name="uq_embeddings_document_chunk"),
    )

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False)
    chunk_text = Column(Text, nullable=False)
    vector = Column(Vector(settings.EMBEDDING_DIMENSIONS), nullable=False)

    document = relationship("Document", back_populates="embeddings")

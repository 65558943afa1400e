# ragchat/models/document.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Table, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ragchat.db.base import Base

chat_documents = Table(
    "chat_documents",
    Base.metadata,
    Column("chat_id", Integer, ForeignKey("chats.id", ondelete="CASCADE"), primary_key=True),
    Column("document_id", Integer, ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True),
)


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    storage_url = Column(String, nullable=True)
    storage_key = Column(String, nullable=True)  # local file name or S3 key
    # "metadata" is reserved on declarative classes
    doc_metadata = Column("metadata", JSON, nullable=True)  # {"size": int, "type": str}
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    chats = relationship("Chat", secondary=chat_documents, back_populates="documents")
    embeddings = relationship(
        "Embedding",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Embedding.chunk_index",
    )

    @property
    def size(self) -> int:
        return int((self.doc_metadata or {}).get("size") or 0)

    @property
    def content_type(self):
        return (self.doc_metadata or {}).get("type")

    @property
    def is_global(self) -> bool:
        return not self.chats

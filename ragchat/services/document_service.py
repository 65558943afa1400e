# ragchat/services/document_service.py
import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile
from sqlalchemy import func
from sqlalchemy.orm import Session

from ragchat import models
from ragchat.core.config import settings
from ragchat.services.retrieval_service import RetrievalService
from ragchat.utils import s3
from ragchat.utils.pdf_parser import extract_text_from_upload
from ragchat.utils.text_chunker import chunk_text

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(self, db: Session, retrieval: RetrievalService = None):
        self.db = db
        self.retrieval = retrieval or RetrievalService(db)
        Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)

    # -------------------
    # Lookup
    # -------------------
    def get_document(self, document_id: int) -> models.Document:
        doc = self.db.query(models.Document).filter(models.Document.id == document_id).first()
        if not doc:
            raise HTTPException(status_code=404, detail="Document not found")
        return doc

    def _get_chat(self, chat_id: int) -> models.Chat:
        chat = self.db.query(models.Chat).filter(models.Chat.id == chat_id).first()
        if not chat:
            raise HTTPException(status_code=404, detail="Chat not found")
        return chat

    def total_stored_bytes(self) -> int:
        return sum(
            int((meta or {}).get("size") or 0)
            for (meta,) in self.db.query(models.Document.doc_metadata).all()
        )

    def document_out(self, doc: models.Document) -> dict:
        embedding_count = (
            self.db.query(func.count(models.Embedding.id))
            .filter(models.Embedding.document_id == doc.id)
            .scalar()
        )
        chat_ids = sorted(c.id for c in doc.chats)
        return {
            "id": doc.id,
            "filename": doc.filename,
            "storage_url": doc.storage_url,
            "size": doc.size,
            "content_type": doc.content_type,
            "chat_ids": chat_ids,
            "is_global": not chat_ids,
            "embedding_count": embedding_count or 0,
            "created_at": doc.created_at,
        }

    def list_documents(self, chat_id: Optional[int] = None, global_only: bool = False) -> List[dict]:
        q = self.db.query(models.Document)
        if chat_id is not None:
            q = q.filter(models.Document.chats.any(models.Chat.id == chat_id))
        elif global_only:
            q = q.filter(~models.Document.chats.any())
        docs = q.order_by(models.Document.created_at.desc(), models.Document.id.desc()).all()
        return [self.document_out(d) for d in docs]

    # -------------------
    # Upload + ingestion
    # -------------------
    def _store_file(self, data: bytes, filename: str, content_type: Optional[str]):
        ext = Path(filename).suffix
        key = f"{uuid.uuid4().hex}{ext}"
        if s3.s3_enabled():
            url = s3.upload_bytes_to_s3(key, data, content_type)
        else:
            with open(os.path.join(settings.UPLOAD_DIR, key), "wb") as f:
                f.write(data)
            url = f"/uploads/{key}"
        return key, url

    def _remove_file(self, key: Optional[str]):
        if not key:
            return
        if s3.s3_enabled():
            s3.delete_from_s3(key)
            return
        path = os.path.join(settings.UPLOAD_DIR, key)
        if os.path.exists(path):
            os.remove(path)

    async def upload_document(self, uploaded_file: UploadFile, chat_id: Optional[int] = None) -> dict:
        # -------------------
        # Validation
        # -------------------
        filename = os.path.basename(uploaded_file.filename or "") or "untitled.txt"
        content_type = uploaded_file.content_type
        data = await uploaded_file.read()
        size = len(data)

        if size == 0:
            raise HTTPException(status_code=400, detail="Empty file")
        if size > settings.MAX_UPLOAD_SIZE_BYTES:
            raise HTTPException(status_code=413, detail="File too large")
        if self.total_stored_bytes() + size > settings.STORAGE_LIMIT_BYTES:
            raise HTTPException(status_code=507, detail="Storage limit reached")

        chat = self._get_chat(chat_id) if chat_id is not None else None

        try:
            text = extract_text_from_upload(data, filename, content_type)
        except ValueError as e:
            # UnicodeDecodeError for binary text uploads, UnreadableDocumentError for broken PDFs
            logger.info("Rejected upload %s (%s): %s", filename, content_type, e)
            raise HTTPException(status_code=400, detail=f"Unsupported file type: {content_type}")
        if not text.strip():
            raise HTTPException(status_code=400, detail="No text found in file")

        # -------------------
        # Persist document, chunks and vectors
        # -------------------
        key, url = self._store_file(data, filename, content_type)
        try:
            doc = models.Document(
                filename=filename,
                content=text,
                storage_url=url,
                storage_key=key,
                doc_metadata={"size": size, "type": content_type},
            )
            if chat is not None:
                doc.chats.append(chat)
            self.db.add(doc)
            self.db.flush()

            chunks = chunk_text(text, chunk_size=settings.CHUNK_SIZE, overlap=settings.CHUNK_OVERLAP)
            count = self.retrieval.store_embeddings(doc, chunks)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self._remove_file(key)
            raise

        self.db.refresh(doc)
        logger.info("Ingested document %s (%s, %d bytes) into %d chunks", doc.id, filename, size, count)
        return self.document_out(doc)

    # -------------------
    # Delete / association
    # -------------------
    def delete_document(self, document_id: int):
        doc = self.get_document(document_id)
        key = doc.storage_key
        self.db.delete(doc)
        self.db.commit()
        try:
            self._remove_file(key)
        except (OSError, BotoCoreError, ClientError):
            logger.warning("Could not remove stored file %s for document %s", key, document_id, exc_info=True)
        logger.info("Deleted document %s", document_id)

    def add_to_chat(self, document_id: int, chat_id: int) -> dict:
        doc = self.get_document(document_id)
        chat = self._get_chat(chat_id)
        if chat not in doc.chats:
            doc.chats.append(chat)
            self.db.commit()
            self.db.refresh(doc)
        return self.document_out(doc)

    def remove_from_chat(self, document_id: int, chat_id: int) -> dict:
        doc = self.get_document(document_id)
        chat = self._get_chat(chat_id)
        if chat in doc.chats:
            doc.chats.remove(chat)
            self.db.commit()
            self.db.refresh(doc)
        return self.document_out(doc)

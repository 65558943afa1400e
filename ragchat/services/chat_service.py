# ragchat/services/chat_service.py
import logging
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ragchat import models
from ragchat.core.config import settings
from ragchat.services import openai_client
from ragchat.services.retrieval_service import RetrievalService, format_context_for_llm
from ragchat.services.title_service import generate_title

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, db: Session, retrieval: RetrievalService = None):
        self.db = db
        self.retrieval = retrieval or RetrievalService(db)

    # -------------------
    # CRUD
    # -------------------
    def create_chat(self, title: Optional[str] = None) -> models.Chat:
        chat = models.Chat(title=(title or "").strip() or models.DEFAULT_CHAT_TITLE)
        self.db.add(chat)
        self.db.commit()
        self.db.refresh(chat)
        logger.info("Created chat %s", chat.id)
        return chat

    def get_chat(self, chat_id: int) -> models.Chat:
        chat = self.db.query(models.Chat).filter(models.Chat.id == chat_id).first()
        if not chat:
            raise HTTPException(status_code=404, detail="Chat not found")
        return chat

    def list_chats(self) -> List[dict]:
        counts = (
            self.db.query(models.Message.chat_id, func.count(models.Message.id).label("n"))
            .group_by(models.Message.chat_id)
            .subquery()
        )
        rows = (
            self.db.query(models.Chat, func.coalesce(counts.c.n, 0))
            .outerjoin(counts, counts.c.chat_id == models.Chat.id)
            .order_by(models.Chat.updated_at.desc(), models.Chat.id.desc())
            .all()
        )
        return [self.chat_out(chat, count) for chat, count in rows]

    def chat_detail(self, chat_id: int) -> dict:
        chat = self.get_chat(chat_id)
        messages = self._history(chat.id)
        out = self.chat_out(chat, len(messages))
        out["messages"] = [
            {"id": m.id, "role": m.role, "content": m.content, "created_at": m.created_at}
            for m in messages
        ]
        return out

    def rename_chat(self, chat_id: int, title: str) -> dict:
        title = (title or "").strip()
        if not title:
            raise HTTPException(status_code=400, detail="Title must not be empty")
        chat = self.get_chat(chat_id)
        chat.title = title
        self.db.commit()
        self.db.refresh(chat)
        return self.chat_out(chat, self._message_count(chat.id))

    def delete_chat(self, chat_id: int):
        chat = self.get_chat(chat_id)
        self.db.delete(chat)
        self.db.commit()
        logger.info("Deleted chat %s", chat_id)

    # -------------------
    # Conversation
    # -------------------
    def _history(self, chat_id: int) -> List[models.Message]:
        return (
            self.db.query(models.Message)
            .filter(models.Message.chat_id == chat_id)
            .order_by(models.Message.created_at.asc(), models.Message.id.asc())
            .all()
        )

    def _message_count(self, chat_id: int) -> int:
        return self.db.query(models.Message).filter(models.Message.chat_id == chat_id).count()

    def chat_out(self, chat: models.Chat, message_count: int) -> dict:
        return {
            "id": chat.id,
            "title": chat.title,
            "created_at": chat.created_at,
            "updated_at": chat.updated_at,
            "message_count": message_count,
        }

    def _prepare_reply(self, chat_id: int, content: str) -> Tuple[List[dict], List[dict]]:
        content = (content or "").strip()
        if not content:
            raise HTTPException(status_code=400, detail="Message must not be empty")
        chat = self.get_chat(chat_id)

        self.db.add(models.Message(chat_id=chat.id, role=models.ROLE_USER, content=content))
        self.db.commit()

        hits = self.retrieval.search_similar_chunks(content, chat.id)
        context = format_context_for_llm(hits)

        conversation = [{"role": m.role, "content": m.content} for m in self._history(chat.id)]
        if context:
            conversation.insert(0, {"role": "system", "content": context})
        return conversation, hits

    def _complete(self, conversation: List[dict], stream: bool):
        return openai_client.get_client().chat.completions.create(
            model=settings.CHAT_MODEL,
            messages=conversation,
            temperature=settings.CHAT_TEMPERATURE,
            max_tokens=settings.CHAT_MAX_TOKENS,
            stream=stream,
        )

    def _finish_reply(self, chat_id: int, answer: str):
        chat = self.get_chat(chat_id)
        self.db.add(models.Message(chat_id=chat.id, role=models.ROLE_ASSISTANT, content=answer))
        chat.updated_at = datetime.now(timezone.utc)
        self.db.commit()

        if chat.title == models.DEFAULT_CHAT_TITLE and self._message_count(chat.id) == 2:
            try:
                self.regenerate_title(chat.id)
            except Exception:
                # the reply is already stored; an untitled chat is not an error
                logger.exception("Title generation failed for chat %s", chat.id)

    def reply(self, chat_id: int, content: str) -> dict:
        conversation, hits = self._prepare_reply(chat_id, content)
        completion = self._complete(conversation, stream=False)
        answer = (completion.choices[0].message.content or "").strip()
        self._finish_reply(chat_id, answer)
        return {
            "chat_id": chat_id,
            "answer": answer,
            "sources": [
                {k: h[k] for k in ("id", "document_id", "filename", "chunk_index", "similarity")}
                for h in hits
            ],
        }

    def stream_reply(self, chat_id: int, content: str) -> Iterator[str]:
        """Start a streamed completion and return an iterator of text deltas.

        Validation, retrieval and the API call happen before the first
        delta, so their errors surface as regular HTTP errors. The
        assistant message is stored once the stream is exhausted.
        """
        conversation, _ = self._prepare_reply(chat_id, content)
        stream = self._complete(conversation, stream=True)

        def generate():
            parts = []
            try:
                for event in stream:
                    if not event.choices:
                        continue
                    delta = event.choices[0].delta.content
                    if delta:
                        parts.append(delta)
                        yield delta
            except Exception:
                logger.exception("Streaming reply failed for chat %s", chat_id)
                raise
            self._finish_reply(chat_id, "".join(parts))

        return generate()

    def regenerate_title(self, chat_id: int) -> dict:
        chat = self.get_chat(chat_id)
        messages = self._history(chat.id)
        if not messages:
            raise HTTPException(status_code=400, detail="Chat has no messages to summarize")
        chat.title = generate_title([{"role": m.role, "content": m.content} for m in messages])
        self.db.commit()
        self.db.refresh(chat)
        logger.info("Chat %s titled %r", chat.id, chat.title)
        return self.chat_out(chat, len(messages))

# ragchat/api/v1/chats.py
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ragchat.core.dependencies import get_db
from ragchat.schemas.chat import (
    ChatCreate,
    ChatUpdate,
    ChatOut,
    ChatDetailOut,
    ChatMessageRequest,
    ChatMessageResponse,
)
from ragchat.schemas.document import DocumentOut
from ragchat.services.chat_service import ChatService
from ragchat.services.document_service import DocumentService

router = APIRouter()


@router.post("", response_model=ChatOut)
def create_chat(payload: ChatCreate, db: Session = Depends(get_db)):
    svc = ChatService(db)
    chat = svc.create_chat(payload.title)
    return svc.chat_out(chat, 0)


@router.get("", response_model=List[ChatOut])
def list_chats(db: Session = Depends(get_db)):
    return ChatService(db).list_chats()


@router.get("/{chat_id}", response_model=ChatDetailOut)
def get_chat(chat_id: int, db: Session = Depends(get_db)):
    return ChatService(db).chat_detail(chat_id)


@router.patch("/{chat_id}", response_model=ChatOut)
def rename_chat(chat_id: int, payload: ChatUpdate, db: Session = Depends(get_db)):
    return ChatService(db).rename_chat(chat_id, payload.title)


@router.delete("/{chat_id}")
def delete_chat(chat_id: int, db: Session = Depends(get_db)):
    ChatService(db).delete_chat(chat_id)
    return {"success": True}


@router.post("/{chat_id}/messages", response_model=ChatMessageResponse)
def send_message(chat_id: int, payload: ChatMessageRequest, db: Session = Depends(get_db)):
    """
    Answer a user message with retrieved document context.

    Streams plain-text deltas by default; ``stream=false`` returns the full
    answer with the chunks it was grounded on.
    """
    service = ChatService(db)
    if not payload.stream:
        return service.reply(chat_id, payload.content)
    return StreamingResponse(
        service.stream_reply(chat_id, payload.content),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/{chat_id}/title", response_model=ChatOut)
def regenerate_title(chat_id: int, db: Session = Depends(get_db)):
    return ChatService(db).regenerate_title(chat_id)


@router.get("/{chat_id}/documents", response_model=List[DocumentOut])
def list_chat_documents(chat_id: int, db: Session = Depends(get_db)):
    ChatService(db).get_chat(chat_id)
    return DocumentService(db).list_documents(chat_id=chat_id)

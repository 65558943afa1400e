# ragchat/schemas/chat.py
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class ChatCreate(BaseModel):
    title: Optional[str] = None


class ChatUpdate(BaseModel):
    title: str


class ChatOut(BaseModel):
    id: int
    title: str
    created_at: datetime
    updated_at: datetime
    message_count: int = 0

    class Config:
        from_attributes = True


class MessageOut(BaseModel):
    id: int
    role: str
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class ChatDetailOut(ChatOut):
    messages: List[MessageOut] = []


class ChatMessageRequest(BaseModel):
    content: str
    stream: bool = True


class SourceChunkOut(BaseModel):
    id: int
    document_id: int
    filename: str
    chunk_index: int
    similarity: float


class ChatMessageResponse(BaseModel):
    chat_id: int
    answer: str
    sources: List[SourceChunkOut] = []

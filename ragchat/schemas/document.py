# ragchat/schemas/document.py
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class DocumentOut(BaseModel):
    id: int
    filename: str
    storage_url: Optional[str] = None
    size: int
    content_type: Optional[str] = None
    chat_ids: List[int] = []
    is_global: bool
    embedding_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True

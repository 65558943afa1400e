# ragchat/api/api_router.py
from fastapi import APIRouter
from ragchat.api.v1 import chats, documents, usage

api_router = APIRouter()
api_router.include_router(chats.router, prefix="/v1/chats", tags=["chats"])
api_router.include_router(documents.router, prefix="/v1/documents", tags=["documents"])
api_router.include_router(usage.router, prefix="/v1/usage", tags=["usage"])

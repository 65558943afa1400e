# ragchat/models/__init__.py
from ragchat.models.chat import Chat, DEFAULT_CHAT_TITLE
from ragchat.models.message import Message, ROLE_USER, ROLE_ASSISTANT
from ragchat.models.document import Document, chat_documents
from ragchat.models.embedding import Embedding

__all__ = [
    "Chat",
    "DEFAULT_CHAT_TITLE",
    "Message",
    "ROLE_USER",
    "ROLE_ASSISTANT",
    "Document",
    "chat_documents",
    "Embedding",
]

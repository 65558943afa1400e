# ragchat/api/v1/documents.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from ragchat.core.dependencies import get_db
from ragchat.schemas.document import DocumentOut
from ragchat.services.document_service import DocumentService

router = APIRouter()


@router.post("/upload", response_model=DocumentOut)
async def upload_document(
    file: UploadFile = File(...),
    chat_id: Optional[int] = Form(None),
    db: Session = Depends(get_db),
):
    """
    Upload a document, chunk and embed it.

    Without ``chat_id`` the document is global and visible to every chat.
    """
    svc = DocumentService(db)
    return await svc.upload_document(file, chat_id)


@router.get("", response_model=List[DocumentOut])
def list_documents(
    chat_id: Optional[int] = Query(None),
    global_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    return DocumentService(db).list_documents(chat_id=chat_id, global_only=global_only)


@router.get("/{document_id}", response_model=DocumentOut)
def get_document(document_id: int, db: Session = Depends(get_db)):
    svc = DocumentService(db)
    return svc.document_out(svc.get_document(document_id))


@router.delete("/{document_id}")
def delete_document(document_id: int, db: Session = Depends(get_db)):
    DocumentService(db).delete_document(document_id)
    return {"success": True}


@router.put("/{document_id}/chats/{chat_id}", response_model=DocumentOut)
def add_document_to_chat(document_id: int, chat_id: int, db: Session = Depends(get_db)):
    return DocumentService(db).add_to_chat(document_id, chat_id)


@router.delete("/{document_id}/chats/{chat_id}", response_model=DocumentOut)
def remove_document_from_chat(document_id: int, chat_id: int, db: Session = Depends(get_db)):
    return DocumentService(db).remove_from_chat(document_id, chat_id)

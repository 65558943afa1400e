# ragchat/api/v1/usage.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ragchat.core.dependencies import get_db
from ragchat.schemas.usage import UsageOut
from ragchat.services.usage_service import UsageService

router = APIRouter()


@router.get("", response_model=UsageOut)
def get_usage(db: Session = Depends(get_db)):
    return UsageService(db).get_usage()

# ragchat/services/usage_service.py
import logging

import requests
from sqlalchemy.orm import Session

from ragchat.core.config import settings
from ragchat.services.document_service import DocumentService

logger = logging.getLogger(__name__)


class UsageService:
    def __init__(self, db: Session):
        self.db = db

    def fetch_credits(self) -> float:
        """Remaining gateway balance; 0 when the gateway is unset or unreachable."""
        if not settings.OPENAI_API_KEY or not settings.OPENAI_BASE_URL:
            return 0.0
        try:
            response = requests.get(
                f"{settings.OPENAI_BASE_URL.rstrip('/')}/credits",
                headers={
                    "Authorization": f"Bearer {settings.OPENAI_API_KEY}",
                    "Content-Type": "application/json",
                },
                timeout=5,
            )
            response.raise_for_status()
            return float(response.json()["balance"])
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.error("Failed to fetch credits from gateway: %s", e)
            return 0.0

    def get_usage(self) -> dict:
        credits = self.fetch_credits()
        total_bytes = DocumentService(self.db).total_stored_bytes()
        credit_limit = credits < settings.CREDIT_LIMIT
        storage_limit = total_bytes > settings.STORAGE_LIMIT_BYTES
        return {
            "credits": credits,
            "total_bytes": total_bytes,
            "is_credit_limit_reached": credit_limit,
            "is_storage_limit_reached": storage_limit,
            "is_limit_reached": credit_limit or storage_limit,
        }

# ragchat/services/openai_client.py
from functools import lru_cache

from openai import OpenAI

from ragchat.core.config import settings


@lru_cache(maxsize=1)
def get_client() -> OpenAI:
    # base_url=None falls back to the SDK default (api.openai.com)
    return OpenAI(api_key=settings.OPENAI_API_KEY, base_url=settings.OPENAI_BASE_URL)

# ragchat/services/title_service.py
import logging
from typing import List

from ragchat.core.config import settings
from ragchat.models import DEFAULT_CHAT_TITLE
from ragchat.services import openai_client

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 80
TITLE_SYSTEM_PROMPT = (
    "Generate a short title (at most 6 words) for the conversation below. "
    "Reply with the title only, without quotes or trailing punctuation."
)


def _clean_title(raw: str) -> str:
    lines = (raw or "").strip().splitlines()
    title = lines[0] if lines else ""
    title = title.strip().strip("\"'`").strip().rstrip(".")
    if title.lower().startswith("title:"):
        title = title[len("title:"):].strip()
    return title[:TITLE_MAX_LENGTH].strip()


def generate_title(messages: List[dict]) -> str:
    """Ask the title model to name a conversation of ``{"role", "content"}`` dicts."""
    transcript = "\n".join(f"{m['role']}: {m['content']}" for m in messages)
    completion = openai_client.get_client().chat.completions.create(
        model=settings.TITLE_MODEL,
        messages=[
            {"role": "system", "content": TITLE_SYSTEM_PROMPT},
            {"role": "user", "content": transcript},
        ],
        max_tokens=30,
        temperature=0.3,
    )
    title = _clean_title(completion.choices[0].message.content)
    if not title:
        logger.warning("Title model returned nothing, keeping the default title")
        return DEFAULT_CHAT_TITLE
    return title

# ragchat/core/logging.py
import logging
import sys

from ragchat.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None):
    level = (level or settings.LOG_LEVEL).upper()
    root = logging.getLogger()
    root.setLevel(level)

    # uvicorn --reload imports the app twice; keep a single handler
    if not any(getattr(h, "_ragchat", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._ragchat = True
        root.addHandler(handler)

    # the SDKs log every request at INFO
    for noisy in ("httpx", "openai", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

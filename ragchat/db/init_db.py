# ragchat/db/init_db.py
import logging

from sqlalchemy import text

from ragchat.db.base import Base
from ragchat.db.session import engine

logger = logging.getLogger(__name__)


def init_db(bind=None):
    bind = bind or engine
    from ragchat import models  # noqa: F401  registers the tables on Base

    # the VECTOR column type must exist before the embeddings table
    if bind.dialect.name == "postgresql":
        with bind.begin() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector;"))
        logger.info("pgvector extension ready")

    Base.metadata.create_all(bind=bind)
    logger.info("Tables created (if missing)")

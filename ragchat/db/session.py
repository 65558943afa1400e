# ragchat/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ragchat.core.config import settings

DATABASE_URL = settings.DATABASE_URL

# Accept common postgres URL variants
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg2://", 1)

engine = create_engine(DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

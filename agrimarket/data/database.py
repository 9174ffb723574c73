# agrimarket/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from agrimarket.utils.settings import (
    DATABASE_URL,
    DB_CONNECT_TIMEOUT_SECONDS,
    DB_STATEMENT_TIMEOUT_MS,
)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # in-memory sqlite must share one connection across threads
        return {
            "connect_args": {"check_same_thread": False, "timeout": DB_CONNECT_TIMEOUT_SECONDS},
            "poolclass": StaticPool,
        }
    return {
        "pool_pre_ping": True,
        "pool_timeout": DB_CONNECT_TIMEOUT_SECONDS,
        "connect_args": {
            "connect_timeout": DB_CONNECT_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}",
        },
    }


engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=True, autocommit=False)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from splitlink.config import Settings

Base = declarative_base()


def make_engine(settings: Settings) -> Engine:
    if settings.database_url.startswith("sqlite"):
        extra = {}
        if settings.database_url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, or every session sees its own empty database
            extra["poolclass"] = StaticPool
        return create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},  # needed for SQLite + FastAPI
            **extra,
        )
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

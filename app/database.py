from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from supabase import acreate_client, AsyncClient
from contextlib import contextmanager

from typing import Optional

from .config import Settings, get_settings

Base = declarative_base()


def build_engine(database_url: str):
    """Create an engine for the local responses table"""
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # Keep a single in-memory database shared by every session
            return create_engine(
                database_url, connect_args=connect_args, poolclass=StaticPool
            )
        return create_engine(database_url, connect_args=connect_args)

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Good for PostgreSQL connections
        pool_recycle=300,  # Recycle connections every 5 minutes
    )


def build_session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker):
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine):
    """Initialize database tables"""
    # Import models so they register with Base
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


async def create_supabase(settings: Optional[Settings] = None) -> AsyncClient:
    """Create the async Supabase client used for table access and realtime"""
    settings = settings or get_settings()
    if not settings.use_supabase:
        raise RuntimeError(
            "Supabase client not initialized. Check SUPABASE_URL and SUPABASE_ANON_KEY."
        )
    return await acreate_client(settings.supabase_url, settings.supabase_key)

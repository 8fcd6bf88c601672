"""
SQLAlchemy engine and sessions for the lead store.

SQLite locally and in tests, Postgres in production. The RQ worker and the
web process each build their own engine at import.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from leadengine.config import DATABASE_URL, DATABASE_POOL_SIZE, DATABASE_MAX_OVERFLOW


class Base(DeclarativeBase):
    pass


def normalize_database_url(url):
    """postgres:// (Heroku/Railway style) → postgresql://, which SQLAlchemy 2.x requires."""
    if url.startswith('postgres://'):
        return 'postgresql://' + url[len('postgres://'):]
    return url


def engine_options(url):
    if url.startswith('sqlite'):
        # worker threads share the file
        return {'connect_args': {'check_same_thread': False}}
    return {
        'pool_pre_ping': True,
        'pool_size': DATABASE_POOL_SIZE,
        'max_overflow': DATABASE_MAX_OVERFLOW,
    }


def make_engine(url=DATABASE_URL):
    url = normalize_database_url(url)
    return create_engine(url, **engine_options(url))


engine = make_engine()
SessionLocal = sessionmaker(bind=engine)


def get_session():
    """New session; callers close it."""
    return SessionLocal()

import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from libris.configs import DB_URI, DEBUG
from libris.core.exceptions import LibrisAPIError, DatabaseInsertError

logger = logging.getLogger(__name__)
# Only use client_encoding for PostgreSQL, not SQLite
engine_kwargs = {'echo': DEBUG}
if DB_URI.startswith('sqlite'):
    engine_kwargs['connect_args'] = {'check_same_thread': False}
    engine_kwargs['poolclass'] = StaticPool
else:
    engine_kwargs['client_encoding'] = 'utf8'
engine = create_engine(DB_URI, **engine_kwargs)
session = scoped_session(sessionmaker(bind=engine, autoflush=False))

class LibrisBase:
    @classmethod
    def get(cls, db, pk):
        return db.get(cls, pk)

    @classmethod
    def get_many(cls, db, offset=None, limit=None):
        return db.query(cls).offset(offset).limit(limit).all()

Base = declarative_base(cls=LibrisBase)

@contextmanager
def atomic(db, action):
    """Commits everything done inside the block as one transaction.

    Any failure rolls the whole block back; datastore errors are re-raised
    as DatabaseInsertError so callers only ever see LibrisAPIError.
    """
    try:
        yield db
        db.commit()
    except LibrisAPIError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise DatabaseInsertError(f"Failed to {action}: {str(e)}.")

def get_db():
    """FastAPI dependency yielding the request's database session."""
    try:
        yield session
    finally:
        session.remove()

def init():
    try:
        Base.metadata.create_all(bind=engine)
        return session
    except Exception as e:
        logger.warning(f"[WARNING] Database initialization failed: {e}")

from contextlib import contextmanager
import os
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/storefront.db")

SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False, future=True)


def _ensure_sqlite_dir(database_url: str) -> None:
    # Ensure sqlite file parent directory exists to avoid 'unable to open database file'
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        db_path = database_url.split("sqlite:///")[-1]
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str) -> Engine:
    kwargs = {}
    if database_url.startswith("sqlite"):
        _ensure_sqlite_dir(database_url)
        # Flask serves requests from several threads; writers wait on the busy timeout.
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": 15}
    engine = create_engine(database_url, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_engine(database_url: Optional[str] = None) -> Engine:
    """Bind the module-level session factory used by get_session()."""
    engine = create_db_engine(database_url or DATABASE_URL)
    SessionLocal.configure(bind=engine)
    return engine


def init_db(engine: Engine) -> None:
    from ..models import Base

    Base.metadata.create_all(engine)


def make_session_factory(bind: Engine):
    """Return a get_session-style context manager bound to ``bind``."""
    factory = sessionmaker(bind=bind, autoflush=False, expire_on_commit=False, future=True)

    @contextmanager
    def session_scope():
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return session_scope


@contextmanager
def get_session():
    if SessionLocal.kw.get("bind") is None:
        init_engine()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

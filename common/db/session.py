from contextlib import contextmanager
import os
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/store.db")


def _ensure_sqlite_dir(url: str) -> None:
    # sqlite does not create missing parent directories
    if url.startswith("sqlite:///") and ":memory:" not in url:
        db_path = url.split("sqlite:///")[-1]
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def _make_engine(url: str):
    _ensure_sqlite_dir(url)
    kwargs = {"future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **kwargs)


engine = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


def init_engine(url: str):
    """Rebind the module-level engine and session factory to ``url``."""
    global engine, DATABASE_URL
    if url != DATABASE_URL:
        engine.dispose()
        DATABASE_URL = url
        engine = _make_engine(url)
        SessionLocal.configure(bind=engine)
    return engine


def init_db() -> None:
    from ..models import Base

    Base.metadata.create_all(bind=engine)


@contextmanager
def get_session():
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

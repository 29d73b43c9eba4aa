from sqlalchemy import event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel, create_engine

from .config import DATABASE_URL

# Import all models to ensure they are registered with SQLModel metadata
from .models import Task, User  # noqa: F401


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection, connection_record):
    # SQLite's built-in lower() only folds ASCII
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def create_db_engine(url: str = DATABASE_URL, **kwargs):
    """Build an engine for ``url``; extra kwargs go straight to ``create_engine``."""
    if url.startswith("sqlite"):
        sqlite_engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            **kwargs,
        )
        event.listen(sqlite_engine, "connect", _register_sqlite_functions)
        return sqlite_engine

    # Postgres and friends: no pooling for serverless deployments, pre-ping stale connections
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        poolclass=NullPool,
        **kwargs,
    )


engine = create_db_engine()

SessionLocal = sessionmaker(class_=Session, autoflush=False, bind=engine)


def get_db():
    """Request-scoped session for FastAPI dependencies and scripts."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    SQLModel.metadata.create_all(bind=engine)

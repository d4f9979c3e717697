from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT


# --- 1. Create SQLAlchemy Engine ---
def make_engine(url: str = DATABASE_URL, echo: bool = False):
    """
    Build the engine that owns the connection pool.

    Server databases get a bounded QueuePool: once all connections are
    checked out, callers wait up to DB_POOL_TIMEOUT seconds and then fail.
    SQLite keeps its dialect default pool.
    """
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        echo=echo,
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_timeout=DB_POOL_TIMEOUT,
        pool_pre_ping=True,
    )


engine = make_engine()

# --- 2. Create Session Factory ---
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# --- 3. Declare Base for ORM Models ---
# models.py imports this Base to define classes
Base = declarative_base()


# --- 4. FastAPI Dependency for Database Session ---
def get_db():
    """
    Dependency that provides a database session for each request.
    Ensures the session (and its pooled connection) is released after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def dispose_engine():
    """Drain the connection pool on shutdown."""
    engine.dispose()

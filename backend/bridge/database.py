# backend/bridge/database.py
"""Database configuration and session management"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from bridge.utils.logging import logger
from bridge.config import settings

# Get database URL from settings (which loads from .env)
DATABASE_URL = settings.database_url

if not DATABASE_URL:
    # Fail fast – explicit URL required
    raise RuntimeError("DATABASE_URL is not set. Define it in .env or docker-compose environment.")
else:
    backend_kind = "sqlite" if DATABASE_URL.startswith("sqlite") else "postgres"
    logger.info("Database configuration loaded", extra={"backend": backend_kind})

# For SQLite, we need check_same_thread=False; an in-memory database must
# also share one connection or every session sees an empty schema
engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, **engine_kwargs)

if DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # ON DELETE CASCADE is ignored by SQLite unless enabled per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

# Base class for models
Base = declarative_base()


def init_db():
    """Initialize database - create all tables"""
    # Register models with Base.metadata
    import bridge.db_models_users  # noqa: F401
    import bridge.db_models_documents  # noqa: F401
    import bridge.db_models_webhooks  # noqa: F401

    logger.info("Initializing database...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized successfully")

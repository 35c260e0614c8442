"""Database setup and configuration."""

from sqlalchemy import create_engine, Column, String, DateTime
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from datetime import datetime
import os
import uuid

# Load environment variables from .env file (for local development)
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # python-dotenv not installed, skip (fine for production)

# DATABASE_URL should be set as an environment variable in production (e.g., from Heroku)
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./portfolio.db")

# Heroku uses postgres:// but SQLAlchemy 2.0+ requires postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

if DATABASE_URL.startswith("sqlite"):
    engine_kwargs = {"connect_args": {"check_same_thread": False}}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # Single shared connection, otherwise every session sees an empty database
        engine_kwargs["poolclass"] = StaticPool
else:
    # PostgreSQL connection pool configuration
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_recycle": 3600,  # Recycle connections after 1 hour
    }

engine = create_engine(DATABASE_URL, **engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def generate_id() -> str:
    """Generate a unique record ID."""
    return str(uuid.uuid4())


class AdminUser(Base):
    """Site owner account for the admin dashboard."""
    __tablename__ = "admin_users"

    id = Column(String, primary_key=True, index=True, default=generate_id)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)


def init_db():
    """Initialize database tables for every feature package."""
    import logging
    from sqlalchemy.exc import IntegrityError, ProgrammingError

    # Register models on Base before create_all
    import src.shared.contact.database  # noqa: F401
    import src.shared.testimonials.database  # noqa: F401

    try:
        # Use checkfirst=True to avoid errors if tables already exist
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logging.info("Database tables initialized successfully")
    except (IntegrityError, ProgrammingError) as e:
        # Duplicate type errors happen when PostgreSQL enum types already exist
        error_str = str(e)
        if "pg_type_typname_nsp_index" in error_str or "duplicate key" in error_str.lower():
            logging.info("Database types already exist, skipping type creation (safe to ignore)")
        else:
            logging.warning(f"Database integrity/programming error (may be safe to ignore): {error_str}")


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

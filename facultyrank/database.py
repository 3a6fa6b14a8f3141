"""
Database schema and connection management.

Uses SQLite with SQLAlchemy as the application record store.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Text,
    Float,
    DateTime,
    JSON,
    ForeignKey,
)
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()

APPLICATION_STATUSES = ("pending", "in_review", "shortlisted", "rejected")


class Application(Base):
    """Faculty job application."""

    __tablename__ = "faculty_applications"

    id = Column(Integer, primary_key=True)
    user_id = Column(String)
    position = Column(String, nullable=False)
    department = Column(String, nullable=False)
    branch = Column(String)
    status = Column(String, nullable=False, default="pending")

    first_name = Column(String, nullable=False)
    middle_name = Column(String)
    last_name = Column(String)
    email = Column(String, nullable=False)
    phone = Column(String)
    address = Column(Text)
    gender = Column(String)
    date_of_birth = Column(String)  # ISO date as submitted
    nationality = Column(String)

    highest_degree = Column(String)
    university = Column(String)
    graduation_year = Column(String)
    previous_positions = Column(Text)
    years_of_experience = Column(String)  # free text, e.g. "7 years"

    resume_path = Column(String)
    cv_path = Column(String)
    cover_letter_path = Column(String)
    teaching_statement_path = Column(String)
    research_statement_path = Column(String)

    score = Column(Float)  # latest prediction score
    category = Column(String)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class TeachingExperience(Base):
    """Teaching post held by an applicant."""

    __tablename__ = "teaching_experiences"

    id = Column(Integer, primary_key=True)
    application_id = Column(Integer, ForeignKey("faculty_applications.id"), nullable=False, index=True)
    post = Column(String)
    institution = Column(String)
    start_date = Column(String)
    end_date = Column(String)  # NULL while ongoing
    experience = Column(Text)


class ResearchExperience(Base):
    """Research post held by an applicant."""

    __tablename__ = "research_experiences"

    id = Column(Integer, primary_key=True)
    application_id = Column(Integer, ForeignKey("faculty_applications.id"), nullable=False, index=True)
    post = Column(String)
    institution = Column(String)
    start_date = Column(String)
    end_date = Column(String)
    experience = Column(Text)


class ResearchInfo(Base):
    """Bibliometric counters, at most one row per application."""

    __tablename__ = "research_info"

    id = Column(Integer, primary_key=True)
    application_id = Column(Integer, ForeignKey("faculty_applications.id"), nullable=False, unique=True)
    scopus_id = Column(String)
    orchid_id = Column(String)
    google_scholar_id = Column(String)
    scopus_general_papers = Column(Integer, nullable=False, default=0)
    conference_papers = Column(Integer, nullable=False, default=0)
    edited_books = Column(Integer, nullable=False, default=0)


class ModelResult(Base):
    """Persisted output of one scoring run."""

    __tablename__ = "ml_model_results"

    id = Column(Integer, primary_key=True)
    application_id = Column(Integer, ForeignKey("faculty_applications.id"), nullable=False, index=True)
    model_name = Column(String, nullable=False)
    model_version = Column(String, nullable=False)
    prediction_score = Column(Float, nullable=False)
    confidence_level = Column(Float, nullable=False)
    category = Column(String, nullable=False)
    features_used = Column(JSON)
    model_metadata = Column(JSON)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


def get_engine(db_path: Path):
    """
    Create an engine for a SQLite file.

    Sessions from this engine are handed to worker threads during
    enrichment, so same-thread checking is turned off.
    """
    return create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()


def get_session_factory(db_path: Path):
    """
    Build a session factory bound to one engine.

    Args:
        db_path: Path to SQLite database file

    Returns:
        sessionmaker producing independent sessions
    """
    return sessionmaker(bind=get_engine(db_path), expire_on_commit=False)


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    return get_session_factory(db_path)()


def row_to_dict(row) -> dict:
    """Convert an ORM row into a JSON-friendly dict keyed by column name."""
    record = {}
    for column in row.__table__.columns:
        value = getattr(row, column.name)
        record[column.name] = value.isoformat() if isinstance(value, datetime) else value
    return record

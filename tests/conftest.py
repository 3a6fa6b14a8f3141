"""
Pytest configuration and shared fixtures.
"""

import threading
from collections import Counter
from pathlib import Path
from typing import Any, Dict

import pytest

from facultyrank.database import (
    Application,
    ResearchExperience,
    ResearchInfo,
    TeachingExperience,
    get_session,
    init_database,
)
from facultyrank.store import RecordStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingStore:
    """Wraps a record store and counts calls per method."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = Counter()
        self._lock = threading.Lock()

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if not callable(attr):
            return attr

        def counted(*args, **kwargs):
            with self._lock:
                self.calls[name] += 1
            return attr(*args, **kwargs)
        return counted


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Initialized, empty SQLite database."""
    path = tmp_path / "faculty.db"
    init_database(path)
    return path


@pytest.fixture
def store(db_path) -> RecordStore:
    return RecordStore.from_path(db_path)


@pytest.fixture
def make_application(db_path):
    """
    Factory inserting an application with optional satellite rows.

    Returns the new application id.
    """
    def _make(teaching=(), research=(), research_info=None, **fields) -> int:
        data = {
            "position": "Assistant Professor",
            "department": "CSE",
            "first_name": "Asha",
            "email": "asha@example.com",
        }
        data.update(fields)

        session = get_session(db_path)
        try:
            application = Application(**data)
            session.add(application)
            session.flush()
            for row in teaching:
                session.add(TeachingExperience(application_id=application.id, **row))
            for row in research:
                session.add(ResearchExperience(application_id=application.id, **row))
            if research_info is not None:
                session.add(ResearchInfo(application_id=application.id, **research_info))
            session.commit()
            return application.id
        finally:
            session.close()
    return _make


@pytest.fixture
def strong_application() -> Dict[str, Any]:
    """Complete application that maxes out every scoring section."""
    return {
        "first_name": "Meera",
        "last_name": "Iyer",
        "email": "meera.iyer@example.com",
        "phone": "+91 98765 43210",
        "address": "12 Hauz Khas, New Delhi",
        "date_of_birth": "1985-06-15",
        "gender": "female",
        "nationality": "Indian",
        "highest_degree": "PhD in Computer Science",
        "university": "IIT Delhi",
        "graduation_year": "2012",
        "years_of_experience": "12 years",
        "previous_positions": "Associate Professor at NIT Trichy, Assistant Professor at IIIT Hyderabad",
        "resume_path": "uploads/meera_resume.pdf",
        "cover_letter_path": "uploads/meera_cover.pdf",
    }


@pytest.fixture
def strong_graph() -> Dict[str, Any]:
    """Satellite rows matching strong_application."""
    return {
        "teaching": [
            {"post": "Assistant Professor", "institution": "IIIT Hyderabad", "start_date": "2012-07-01",
             "end_date": "2016-06-30", "experience": "Taught data structures and compilers to undergraduates"},
            {"post": "Associate Professor", "institution": "NIT Trichy", "start_date": "2016-07-01",
             "end_date": None, "experience": "Graduate courses in distributed systems"},
            {"post": "Visiting Faculty", "institution": "IIT Madras", "start_date": "2014-01-01",
             "end_date": "2014-05-31", "experience": "Short course"},
        ],
        "research": [
            {"post": "Postdoctoral Fellow", "institution": "IIT Bombay", "start_date": "2011-01-01",
             "end_date": "2012-06-30", "experience": "Consensus protocols"},
            {"post": "Research Intern", "institution": "IISc", "start_date": "2009-05-01",
             "end_date": "2009-08-31", "experience": "Graph algorithms"},
        ],
        "research_info": {
            "scopus_id": "57190000001",
            "scopus_general_papers": 16,
            "conference_papers": 11,
            "edited_books": 0,
        },
    }


@pytest.fixture
def counting_store(store) -> CountingStore:
    return CountingStore(store)

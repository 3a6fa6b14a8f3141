"""
Feature extraction for candidate scoring.

Turns one application plus its teaching history, research history and
bibliometric counters into a flat, immutable FeatureSet. All keyword
matching is case-insensitive substring matching.

Invariant:
Extraction is deterministic for a given ``today`` and never touches
the record store.
"""

import re
from dataclasses import dataclass, asdict, fields
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

TIER1_KEYWORDS = ("iit", "iim", "iisc", "du", "jnu")
TIER2_KEYWORDS = ("nit", "iiser", "tifr", "isro")
INDUSTRY_KEYWORDS = ("industry", "corporate", "private", "company", "firm")

REQUIRED_FIELDS = ("first_name", "last_name", "email", "phone", "address", "highest_degree", "university")
REQUIRED_DOCUMENTS = ("resume_path", "cover_letter_path")

YEARS_RE = re.compile(r"(\d+)\s*years?", re.IGNORECASE)
MONTHS_RE = re.compile(r"(\d+)\s*months?", re.IGNORECASE)


@dataclass(frozen=True)
class FeatureSet:
    # Demographics
    age: Optional[int]
    gender: Optional[str]
    nationality: Optional[str]
    # Education
    education_level: str
    university_tier: str
    graduation_recency: Optional[int]
    # Experience
    total_experience_years: int
    teaching_experience_count: int
    research_experience_count: int
    has_industry_experience: bool
    # Research output
    total_publications: int
    scopus_papers: int
    conference_papers: int
    edited_books: int
    has_research_ids: bool
    # Position
    position_type: Optional[str]
    department: Optional[str]
    branch: Optional[str]
    # Application quality
    document_completeness: float
    application_completeness: float
    description_quality: float
    # Derived
    experience_to_publication_ratio: float
    teaching_research_balance: float
    career_progression: float

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __len__(self) -> int:
        return len(fields(self))


def categorize_education(degree: Optional[str]) -> str:
    if not degree:
        return "unknown"
    deg = degree.lower()
    if "phd" in deg or "doctorate" in deg:
        return "phd"
    if "master" in deg or "m.tech" in deg or "mba" in deg:
        return "masters"
    if "bachelor" in deg or "b.tech" in deg:
        return "bachelors"
    return "other"


def categorize_university(university: Optional[str]) -> str:
    """Coarse tier bucket, independent of the NIRF/QS prestige scores."""
    if not university:
        return "unknown"
    uni = university.lower()
    if any(k in uni for k in TIER1_KEYWORDS):
        return "tier1"
    if any(k in uni for k in TIER2_KEYWORDS):
        return "tier2"
    if "university" in uni or "institute" in uni:
        return "tier3"
    return "other"


def extract_years(experience: Any) -> int:
    """
    Whole years from free text like "7 years" or "18 months".

    Months are floor-divided by 12, so "8 months" is 0 years.
    """
    if not experience:
        return 0
    text = str(experience)
    match = YEARS_RE.search(text)
    if match:
        return int(match.group(1))
    match = MONTHS_RE.search(text)
    if match:
        return int(match.group(1)) // 12
    return 0


def calculate_age(date_of_birth: Any, today: date) -> Optional[int]:
    if not date_of_birth:
        return None
    if isinstance(date_of_birth, datetime):
        born = date_of_birth.date()
    elif isinstance(date_of_birth, date):
        born = date_of_birth
    else:
        try:
            born = date.fromisoformat(str(date_of_birth)[:10])
        except ValueError:
            return None
    return int((today - born).days // 365.25)


def graduation_recency(graduation_year: Any, today: date) -> Optional[int]:
    if not graduation_year:
        return None
    try:
        return today.year - int(str(graduation_year).strip())
    except ValueError:
        return None


def career_progression(previous_positions: Optional[str]) -> float:
    if not previous_positions:
        return 0.0
    positions = previous_positions.lower()
    if "senior" in positions or "head" in positions or "director" in positions:
        return 1.0
    if "associate" in positions or "manager" in positions:
        return 0.7
    if "assistant" in positions or "junior" in positions:
        return 0.4
    return 0.2


def _count(research_info: Mapping[str, Any], column: str) -> int:
    return int(research_info.get(column) or 0)


class FeatureExtractor:
    """Builds FeatureSets from application record graphs."""

    def extract(
        self,
        application: Mapping[str, Any],
        teaching: Sequence[Mapping[str, Any]] = (),
        research: Sequence[Mapping[str, Any]] = (),
        research_info: Optional[Mapping[str, Any]] = None,
        today: Optional[date] = None,
    ) -> FeatureSet:
        today = today or date.today()
        research_info = research_info or {}

        scopus = _count(research_info, "scopus_general_papers")
        conference = _count(research_info, "conference_papers")
        books = _count(research_info, "edited_books")
        total_publications = scopus + conference + books

        years = extract_years(application.get("years_of_experience"))
        teaching_count = len(teaching)
        research_count = len(research)
        experience_total = teaching_count + research_count

        previous_positions = application.get("previous_positions") or ""

        return FeatureSet(
            age=calculate_age(application.get("date_of_birth"), today),
            gender=application.get("gender"),
            nationality=application.get("nationality"),
            education_level=categorize_education(application.get("highest_degree")),
            university_tier=categorize_university(application.get("university")),
            graduation_recency=graduation_recency(application.get("graduation_year"), today),
            total_experience_years=years,
            teaching_experience_count=teaching_count,
            research_experience_count=research_count,
            has_industry_experience=any(k in previous_positions.lower() for k in INDUSTRY_KEYWORDS),
            total_publications=total_publications,
            scopus_papers=scopus,
            conference_papers=conference,
            edited_books=books,
            has_research_ids=bool(
                research_info.get("scopus_id")
                or research_info.get("google_scholar_id")
                or research_info.get("orchid_id")
            ),
            position_type=application.get("position"),
            department=application.get("department"),
            branch=application.get("branch"),
            document_completeness=self._ratio(application, REQUIRED_DOCUMENTS),
            application_completeness=self._ratio(application, REQUIRED_FIELDS),
            description_quality=self._description_quality(previous_positions, teaching),
            experience_to_publication_ratio=total_publications / years if years > 0 else 0.0,
            teaching_research_balance=(
                min(teaching_count, research_count) / experience_total if experience_total > 0 else 0.0
            ),
            career_progression=career_progression(previous_positions),
        )

    @staticmethod
    def _ratio(application: Mapping[str, Any], required: Sequence[str]) -> float:
        present = [name for name in required if application.get(name)]
        return len(present) / len(required)

    @staticmethod
    def _description_quality(previous_positions: str, teaching: Sequence[Mapping[str, Any]]) -> float:
        quality = 0.0
        if len(previous_positions) > 50:
            quality += 0.5
        if any(len(exp.get("experience") or "") > 30 for exp in teaching):
            quality += 0.5
        return quality


def feature_names() -> List[str]:
    return [f.name for f in fields(FeatureSet)]

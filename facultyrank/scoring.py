"""
Hand-weighted candidate scorer.

Four capped sections add up to a 0-100 score:

    education  (max 25)  degree level + university tier
    experience (max 30)  years bracket + 3 per experience record (up to 5)
    research   (max 25)  Scopus bracket + conference bracket + volume bonus
    quality    (max 20)  weighted completeness and description quality

Confidence starts at 0.8 and loses 0.1 for each missing signal, down to
0.3. It reflects how much data was available, nothing more.

Invariant:
Given identical features, ``score`` returns an identical result.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Union

from .features import FeatureSet

EDUCATION_CAP = 25
EXPERIENCE_CAP = 30
RESEARCH_CAP = 25

EDUCATION_POINTS = {"phd": 15, "masters": 10, "bachelors": 5}
TIER_POINTS = {"tier1": 10, "tier2": 7, "tier3": 4}

BASE_CONFIDENCE = 0.8
MIN_CONFIDENCE = 0.3
CONFIDENCE_PENALTY = 0.1

FEATURE_IMPORTANCE = {
    "education_level": 0.25,
    "total_experience_years": 0.20,
    "scopus_papers": 0.15,
    "university_tier": 0.10,
    "teaching_experience_count": 0.10,
    "research_experience_count": 0.10,
    "application_completeness": 0.05,
    "document_completeness": 0.05,
}


@dataclass(frozen=True)
class ScoreResult:
    score: float
    confidence: float
    category: str
    breakdown: Dict[str, float] = field(default_factory=dict)


def categorize(score: float) -> str:
    if score >= 85:
        return "excellent"
    if score >= 70:
        return "good"
    if score >= 55:
        return "average"
    if score >= 40:
        return "below_average"
    return "poor"


def score_education(education_level: str, university_tier: str) -> float:
    points = EDUCATION_POINTS.get(education_level, 2) + TIER_POINTS.get(university_tier, 1)
    return min(points, EDUCATION_CAP)


def score_experience(total_years: int, teaching_count: int, research_count: int) -> float:
    if total_years >= 10:
        points = 15
    elif total_years >= 5:
        points = 12
    elif total_years >= 2:
        points = 8
    else:
        points = 3
    points += min(teaching_count + research_count, 5) * 3
    return min(points, EXPERIENCE_CAP)


def score_research(total_publications: int, scopus_papers: int, conference_papers: int) -> float:
    points = 0
    if scopus_papers >= 15:
        points += 15
    elif scopus_papers >= 10:
        points += 12
    elif scopus_papers >= 5:
        points += 8
    elif scopus_papers > 0:
        points += 4

    if conference_papers >= 10:
        points += 7
    elif conference_papers >= 5:
        points += 5
    elif conference_papers > 0:
        points += 3

    if total_publications >= 20:
        points += 3
    elif total_publications >= 10:
        points += 2
    elif total_publications >= 5:
        points += 1
    return min(points, RESEARCH_CAP)


def score_quality(document_completeness: float, application_completeness: float, description_quality: float) -> float:
    return document_completeness * 8 + application_completeness * 7 + description_quality * 5


def calculate_confidence(features: Mapping[str, Any]) -> float:
    missing = sum((
        not features.get("age"),
        features.get("education_level", "unknown") in (None, "", "unknown"),
        features.get("university_tier", "unknown") in (None, "", "unknown"),
        # Counts are penalized only when known to be zero
        features.get("total_experience_years") == 0,
        features.get("total_publications") == 0,
    ))
    confidence = max(BASE_CONFIDENCE - CONFIDENCE_PENALTY * missing, MIN_CONFIDENCE)
    # 0.8 - 0.5 is not exactly 0.3 in binary floating point
    return round(confidence, 2)


class HeuristicScorer:
    """Pure scoring function over a FeatureSet or an equivalent mapping."""

    def score(self, features: Union[FeatureSet, Mapping[str, Any]]) -> ScoreResult:
        if isinstance(features, FeatureSet):
            features = features.as_dict()

        breakdown = {
            "education": score_education(
                features.get("education_level", "unknown"),
                features.get("university_tier", "unknown"),
            ),
            "experience": score_experience(
                features.get("total_experience_years") or 0,
                features.get("teaching_experience_count") or 0,
                features.get("research_experience_count") or 0,
            ),
            "research": score_research(
                features.get("total_publications") or 0,
                features.get("scopus_papers") or 0,
                features.get("conference_papers") or 0,
            ),
            "quality": score_quality(
                features.get("document_completeness") or 0,
                features.get("application_completeness") or 0,
                features.get("description_quality") or 0,
            ),
        }

        total = min(max(sum(breakdown.values()), 0), 100)
        return ScoreResult(
            score=total,
            confidence=calculate_confidence(features),
            category=categorize(total),
            breakdown=breakdown,
        )

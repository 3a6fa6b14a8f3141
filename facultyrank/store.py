"""
Record store access for applications and their satellite tables.

Responsibilities:
- Fetch by id, fetch by id set (IN), fetch all rows for one application.
- Persist prediction results and status changes.

Non-Responsibilities:
- No scoring, no prestige lookup, no caching.

Every call opens its own session, so calls can run on worker threads.
Rows leave this module as plain dicts.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from .database import (
    APPLICATION_STATUSES,
    Application,
    ModelResult,
    ResearchExperience,
    ResearchInfo,
    TeachingExperience,
    get_session_factory,
    row_to_dict,
)
from .errors import NotFoundError, UpstreamUnavailableError, ValidationError
from .logger import get_logger

logger = get_logger()

TABLES = {
    "faculty_applications": Application,
    "teaching_experiences": TeachingExperience,
    "research_experiences": ResearchExperience,
    "research_info": ResearchInfo,
    "ml_model_results": ModelResult,
}


class RecordStore:
    """SQLAlchemy-backed application record store."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @classmethod
    def from_path(cls, db_path: Path) -> "RecordStore":
        return cls(get_session_factory(db_path))

    @contextmanager
    def _session(self, table: str):
        logger.record_store_query(table)
        session = self._session_factory()
        try:
            yield session
        except OperationalError as e:
            session.rollback()
            raise UpstreamUnavailableError(f"Record store unavailable ({table}): {e}") from e
        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _model(table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}")

    # Reads

    def get_application(self, application_id: int) -> Dict[str, Any]:
        with self._session("faculty_applications") as session:
            row = session.get(Application, application_id)
            if row is None:
                raise NotFoundError("Application", application_id)
            return row_to_dict(row)

    def fetch_for_application(self, table: str, application_id: int) -> List[Dict[str, Any]]:
        """All rows of ``table`` owned by one application, oldest first."""
        model = self._model(table)
        with self._session(table) as session:
            rows = session.scalars(
                select(model).where(model.application_id == application_id).order_by(model.id)
            ).all()
            return [row_to_dict(r) for r in rows]

    def fetch_for_ids(self, table: str, application_ids: Iterable[int]) -> List[Dict[str, Any]]:
        """Rows of ``table`` for a set of applications in one query."""
        model = self._model(table)
        ids = sorted(set(application_ids))
        if not ids:
            return []
        with self._session(table) as session:
            rows = session.scalars(
                select(model)
                .where(model.application_id.in_(ids))
                .order_by(model.application_id, model.id)
            ).all()
            return [row_to_dict(r) for r in rows]

    def get_research_info(self, application_id: int) -> Optional[Dict[str, Any]]:
        rows = self.fetch_for_application("research_info", application_id)
        return rows[0] if rows else None

    def top_ranked(
        self,
        department: Optional[str] = None,
        position: Optional[str] = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """Scored applications, best first."""
        with self._session("faculty_applications") as session:
            query = select(Application).where(Application.score.is_not(None))
            if department:
                query = query.where(Application.department == department)
            if position:
                query = query.where(Application.position == position)
            query = query.order_by(Application.score.desc(), Application.id).limit(limit)
            return [row_to_dict(r) for r in session.scalars(query).all()]

    def list_predictions(self, application_id: int) -> List[Dict[str, Any]]:
        with self._session("ml_model_results") as session:
            rows = session.scalars(
                select(ModelResult)
                .where(ModelResult.application_id == application_id)
                .order_by(ModelResult.created_at.desc(), ModelResult.id.desc())
            ).all()
            return [row_to_dict(r) for r in rows]

    def prediction_scores(self) -> List[Dict[str, Any]]:
        with self._session("ml_model_results") as session:
            rows = session.execute(
                select(ModelResult.prediction_score, ModelResult.confidence_level)
            ).all()
            return [{"prediction_score": s, "confidence_level": c} for s, c in rows]

    # Writes

    def save_prediction(self, application_id: int, prediction: Dict[str, Any], features: Dict[str, Any]) -> int:
        """Store a scoring run and mirror its score onto the application row."""
        metadata = prediction["model_metadata"]
        with self._session("ml_model_results") as session:
            application = session.get(Application, application_id)
            if application is None:
                raise NotFoundError("Application", application_id)
            result = ModelResult(
                application_id=application_id,
                model_name=metadata["model_name"],
                model_version=metadata["model_version"],
                prediction_score=prediction["score"],
                confidence_level=prediction["confidence"],
                category=prediction["category"],
                features_used=features,
                model_metadata=metadata,
            )
            session.add(result)
            application.score = prediction["score"]
            application.category = prediction["category"]
            session.commit()
            return result.id

    def update_status(self, application_id: int, status: str) -> Dict[str, Any]:
        if status not in APPLICATION_STATUSES:
            raise ValidationError(
                f"Invalid status '{status}'. Expected one of: {', '.join(APPLICATION_STATUSES)}"
            )
        with self._session("faculty_applications") as session:
            application = session.get(Application, application_id)
            if application is None:
                raise NotFoundError("Application", application_id)
            previous = application.status
            application.status = status
            session.commit()
            logger.info("Application status changed", application_id=application_id, old=previous, new=status)
            return row_to_dict(application)

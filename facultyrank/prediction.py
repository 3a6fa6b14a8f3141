"""
Prediction service: runs the heuristic scorer against stored applications.

Loads an application's record graph, extracts features, scores them and
persists the result. Scoring on submission is dispatched explicitly onto
a background executor; its failures are logged, never raised to the
submitter.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from .features import FeatureExtractor
from .logger import get_logger
from .retry import is_transient_error
from .schema import validate_application_id, validate_batch_ids
from .scoring import FEATURE_IMPORTANCE, HeuristicScorer

logger = get_logger()

MODEL_NAME = "faculty_recruitment_predictor"
MODEL_VERSION = "1.0.0"
MAX_BATCH_SIZE = 50

GRAPH_TABLES = ("teaching_experiences", "research_experiences", "research_info")


class PredictionService:
    def __init__(
        self,
        store,
        extractor: Optional[FeatureExtractor] = None,
        scorer: Optional[HeuristicScorer] = None,
        max_workers: int = 4,
        on_change: Optional[Callable[[int], None]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Args:
            store: Record store
            extractor: Feature extractor (default: FeatureExtractor())
            scorer: Scorer (default: HeuristicScorer())
            max_workers: Threads for background scoring
            on_change: Called with the application id after a result is saved
            today: Date source for age/recency features
        """
        self.store = store
        self.extractor = extractor or FeatureExtractor()
        self.scorer = scorer or HeuristicScorer()
        self.on_change = on_change
        self._today = today or date.today
        self._readers = ThreadPoolExecutor(max_workers=len(GRAPH_TABLES), thread_name_prefix="graph")
        # Separate pool so background runs never wait on their own graph reads
        self._background = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="predict")

    def load_graph(self, application_id: int) -> Dict[str, Any]:
        """Application row plus satellite rows, read in parallel."""
        application = self.store.get_application(application_id)
        futures = {
            table: self._readers.submit(self.store.fetch_for_application, table, application_id)
            for table in GRAPH_TABLES
        }
        rows = {table: future.result() for table, future in futures.items()}
        return {
            "application": application,
            "teaching": rows["teaching_experiences"],
            "research": rows["research_experiences"],
            "research_info": rows["research_info"][0] if rows["research_info"] else None,
        }

    def predict(self, application_id: Any) -> Dict[str, Any]:
        application_id = validate_application_id(application_id)
        logger.info("Running prediction", application_id=application_id)

        try:
            graph = self.load_graph(application_id)
            features = self.extractor.extract(
                graph["application"],
                graph["teaching"],
                graph["research"],
                graph["research_info"],
                today=self._today(),
            )
            result = self.scorer.score(features)
            prediction = {
                "application_id": application_id,
                "score": result.score,
                "confidence": result.confidence,
                "category": result.category,
                "breakdown": result.breakdown,
                "features_used": len(features),
                "model_metadata": {
                    "model_name": MODEL_NAME,
                    "model_version": MODEL_VERSION,
                    "prediction_date": datetime.now().isoformat(),
                    "feature_importance": dict(FEATURE_IMPORTANCE),
                },
            }
            self.store.save_prediction(application_id, prediction, features.as_dict())
        except Exception as e:
            logger.record_prediction(False, type(e).__name__)
            logger.error("Prediction failed", application_id=application_id, error=str(e))
            raise

        logger.record_prediction(True)
        logger.info(
            "Prediction saved",
            application_id=application_id,
            score=prediction["score"],
            category=prediction["category"],
        )
        if self.on_change:
            self.on_change(application_id)
        return prediction

    def batch_predict(self, application_ids: Any) -> List[Dict[str, Any]]:
        ids = validate_batch_ids(application_ids, MAX_BATCH_SIZE)
        logger.info("Running batch prediction", count=len(ids))
        return [self.predict(app_id) for app_id in ids]

    def dispatch_background_scoring(self, application_id: Any) -> Future:
        """Score an application off the caller's thread."""
        application_id = validate_application_id(application_id)
        future = self._background.submit(self.predict, application_id)
        future.add_done_callback(lambda f: self._log_background_failure(application_id, f))
        return future

    @staticmethod
    def _log_background_failure(application_id: int, future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error(
                "Background scoring failed",
                application_id=application_id,
                error=str(error),
                transient=is_transient_error(error),
            )

    def get_predictions(self, application_id: Any) -> List[Dict[str, Any]]:
        application_id = validate_application_id(application_id)
        return [
            {
                "id": row["id"],
                "model_name": row["model_name"],
                "model_version": row["model_version"],
                "prediction_score": row["prediction_score"],
                "confidence_level": row["confidence_level"],
                "category": row["category"],
                "features_used": row["features_used"],
                "model_metadata": row["model_metadata"],
                "created_at": row["created_at"],
            }
            for row in self.store.list_predictions(application_id)
        ]

    def model_performance(self) -> Dict[str, Any]:
        rows = self.store.prediction_scores()
        total = len(rows)
        return {
            "total_predictions": total,
            "average_score": sum(r["prediction_score"] for r in rows) / total if total else None,
            "average_confidence": sum(r["confidence_level"] for r in rows) / total if total else None,
            "model_version": MODEL_VERSION,
            "last_updated": datetime.now().isoformat(),
        }

    @staticmethod
    def model_info() -> Dict[str, Any]:
        return {
            "name": MODEL_NAME,
            "version": MODEL_VERSION,
            "description": "Faculty Recruitment Success Prediction Model",
            "features": [
                "Education Level & University Tier",
                "Years of Experience",
                "Teaching & Research Experience",
                "Publications & Research Output",
                "Application Quality & Completeness",
                "Career Progression Indicators",
            ],
            "output_categories": [
                "excellent (85-100)",
                "good (70-84)",
                "average (55-69)",
                "below_average (40-54)",
                "poor (0-39)",
            ],
        }

    def shutdown(self, wait: bool = True) -> None:
        self._background.shutdown(wait=wait)
        self._readers.shutdown(wait=wait)


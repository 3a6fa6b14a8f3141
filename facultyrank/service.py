"""
Recruitment service facade.

Reads go through the ResponseMemoizer and report whether they were served
from cache. Writes run against the record store first and, once they
succeed, invalidate every cached read they can affect.
"""

from typing import Any, Dict, List, Optional

from .cache import CacheStore, create_cache_store
from .database import init_database
from .enrichment import RankingEnricher, parse_filter, parse_limit
from .env import Settings
from .logger import get_logger
from .memoize import MemoizedResponse, ResponseMemoizer, build_request_key
from .prediction import PredictionService
from .rankings import PrestigeResolver
from .schema import validate_application_id, validate_scopus_id
from .scopus import ScopusClient
from .store import RecordStore

logger = get_logger()

RANKINGS_PATH = "/applications/rankings/top"
PREDICTIONS_PATH = "/ml/predictions"
PERFORMANCE_PATH = "/ml/performance"
SCOPUS_PATH = "/scopus/author"

# Every read path derived from application or prediction data
APPLICATION_READ_PATTERNS = ("req:/applications*", "req:/ml*")

SCOPUS_TTL = 3600


class RecruitmentService:
    def __init__(
        self,
        store: RecordStore,
        cache: CacheStore,
        enricher: Optional[RankingEnricher] = None,
        predictor: Optional[PredictionService] = None,
        scopus: Optional[ScopusClient] = None,
        resolver: Optional[PrestigeResolver] = None,
        rankings_ttl: int = 300,
        default_ttl: int = 300,
    ):
        self.store = store
        self.cache = cache
        self.memoizer = ResponseMemoizer(cache)
        self.resolver = resolver or PrestigeResolver()
        self.enricher = enricher or RankingEnricher(store, self.resolver)
        self.predictor = predictor or PredictionService(store, on_change=self._on_prediction_saved)
        self.scopus = scopus
        self.rankings_ttl = rankings_ttl
        self.default_ttl = default_ttl

    # Reads

    def top_rankings(self, department: Optional[str] = None, position: Optional[str] = None, limit: Any = 10) -> MemoizedResponse:
        department, position, limit = parse_filter(department), parse_filter(position), parse_limit(limit)
        key = build_request_key(RANKINGS_PATH, {"department": department, "position": position, "limit": limit})
        return self.memoizer.wrap(
            key,
            self.rankings_ttl,
            lambda: self.enricher.top_ranked(department, position, limit),
        )

    def predictions(self, application_id: Any) -> MemoizedResponse:
        application_id = validate_application_id(application_id)
        key = build_request_key(f"{PREDICTIONS_PATH}/{application_id}")
        return self.memoizer.wrap(key, self.default_ttl, lambda: self.predictor.get_predictions(application_id))

    def model_performance(self) -> MemoizedResponse:
        key = build_request_key(PERFORMANCE_PATH)
        return self.memoizer.wrap(key, self.default_ttl, self.predictor.model_performance)

    def model_info(self) -> Dict[str, Any]:
        return self.predictor.model_info()

    def resolve_institution(self, institution: str) -> Dict[str, Any]:
        return self.resolver.describe(institution)

    def scopus_author(self, scopus_id: str) -> MemoizedResponse:
        scopus_id = validate_scopus_id(scopus_id)
        if self.scopus is None:
            self.scopus = ScopusClient(api_key=None)
        key = build_request_key(f"{SCOPUS_PATH}/{scopus_id}")
        return self.memoizer.wrap(key, SCOPUS_TTL, lambda: self.scopus.get_complete_author_data(scopus_id))

    # Writes

    def predict(self, application_id: Any) -> Dict[str, Any]:
        return self.predictor.predict(application_id)

    def batch_predict(self, application_ids: List[Any]) -> List[Dict[str, Any]]:
        return self.predictor.batch_predict(application_ids)

    def update_status(self, application_id: Any, status: str) -> Dict[str, Any]:
        application = self.store.update_status(validate_application_id(application_id), status)
        self.invalidate_application_reads()
        return application

    def invalidate_application_reads(self) -> int:
        return self.memoizer.invalidate(*APPLICATION_READ_PATTERNS)

    def _on_prediction_saved(self, application_id: int) -> None:
        logger.debug("Prediction stored, invalidating cached reads", application_id=application_id)
        self.invalidate_application_reads()

    def close(self) -> None:
        self.predictor.shutdown()


def build_service(settings: Settings) -> RecruitmentService:
    """Wire the store, cache and services from settings."""
    init_database(settings.db_path)
    store = RecordStore.from_path(settings.db_path)
    resolver = PrestigeResolver()
    return RecruitmentService(
        store=store,
        cache=create_cache_store(settings),
        enricher=RankingEnricher(store, resolver, max_workers=settings.enrich_workers),
        scopus=ScopusClient(settings.scopus_api_key),
        resolver=resolver,
        rankings_ttl=settings.rankings_cache_ttl,
        default_ttl=settings.cache_ttl,
    )

"""
Ranking enrichment.

Adds prestige scores, the latest teaching post and a research score to a
page of already-ranked applications.

Prestige falls back in a fixed order, stopping at the first institution
that resolves to at least one rank:
    own university -> first research institution -> first teaching institution

Satellite rows for the whole page are read with one IN query per table,
run in parallel, so store round trips do not grow with page size.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional

from .logger import get_logger
from .rankings import NO_PRESTIGE, PrestigeResolver, PrestigeScores

logger = get_logger()

DEFAULT_LIMIT = 10
MAX_LIMIT = 50
RESEARCH_SCORE_PAPERS = 50

SATELLITE_TABLES = ("research_experiences", "teaching_experiences", "research_info")


def parse_limit(limit: Any) -> int:
    """Lenient page size: junk or non-positive means the default, capped at 50."""
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if value <= 0:
        return DEFAULT_LIMIT
    return min(value, MAX_LIMIT)


def parse_filter(value: Optional[str]) -> Optional[str]:
    if not value or value == "All":
        return None
    return value


def research_score10(total_papers: int) -> float:
    """Linear 0-10 score; 50 or more papers score 10."""
    return round(min(total_papers / RESEARCH_SCORE_PAPERS, 1) * 10, 1)


def _group_by_application(rows: Iterable[Dict[str, Any]]) -> Dict[int, List[Dict[str, Any]]]:
    grouped: Dict[int, List[Dict[str, Any]]] = {}
    for row in rows:
        grouped.setdefault(row["application_id"], []).append(row)
    return grouped


def _latest_post(teaching: List[Dict[str, Any]]) -> Optional[str]:
    dated = [t for t in teaching if t.get("start_date")]
    if not dated:
        return teaching[0].get("post") if teaching else None
    return max(dated, key=lambda t: str(t["start_date"])).get("post")


class RankingEnricher:
    """Composes the prestige resolver with batched satellite reads."""

    def __init__(self, store, resolver: Optional[PrestigeResolver] = None, max_workers: int = 3):
        self.store = store
        self.resolver = resolver or PrestigeResolver()
        self.max_workers = max_workers

    def top_ranked(self, department: Optional[str] = None, position: Optional[str] = None, limit: Any = DEFAULT_LIMIT):
        page = self.store.top_ranked(parse_filter(department), parse_filter(position), parse_limit(limit))
        return self.enrich(page)

    def enrich(self, applications: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        ids = [app["id"] for app in applications if app.get("id") is not None]
        satellites = self._fetch_satellites(ids)

        research = _group_by_application(satellites["research_experiences"])
        teaching = _group_by_application(satellites["teaching_experiences"])
        counters = {row["application_id"]: row for row in satellites["research_info"]}

        enriched = []
        for app in applications:
            app_id = app.get("id")
            app_research = research.get(app_id, [])
            app_teaching = teaching.get(app_id, [])

            prestige = self._resolve_prestige(
                app.get("university"),
                app_research[0].get("institution") if app_research else None,
                app_teaching[0].get("institution") if app_teaching else None,
            )

            info = counters.get(app_id)
            total_papers = 0
            score10 = None
            if info is not None:
                total_papers = (info.get("scopus_general_papers") or 0) + (info.get("conference_papers") or 0)
                score10 = research_score10(total_papers)

            enriched.append({
                **app,
                "nirf_score10": prestige.nirf10,
                "qs_score10": prestige.qs10,
                "teaching_post": _latest_post(app_teaching),
                "research_score10": score10,
                "total_papers": total_papers,
            })
        return enriched

    def _resolve_prestige(self, *institutions: Optional[str]) -> PrestigeScores:
        for institution in institutions:
            if not institution:
                continue
            try:
                scores = self.resolver.resolve(institution)
            except Exception as e:
                logger.warning("Prestige lookup failed", institution=institution, error=str(e))
                continue
            if not scores.is_empty:
                return scores
        return NO_PRESTIGE

    def _fetch_satellites(self, ids: List[int]) -> Dict[str, List[Dict[str, Any]]]:
        """Fan out one bulk read per table and wait for all of them."""
        if not ids:
            return {table: [] for table in SATELLITE_TABLES}

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="enrich") as pool:
            futures = {
                table: pool.submit(self._safe_fetch(table), ids)
                for table in SATELLITE_TABLES
            }
            return {table: future.result() for table, future in futures.items()}

    def _safe_fetch(self, table: str) -> Callable[[List[int]], List[Dict[str, Any]]]:
        def fetch(ids: List[int]) -> List[Dict[str, Any]]:
            try:
                return self.store.fetch_for_ids(table, ids)
            except Exception as e:
                # Missing satellite data becomes null fields, not a failed page
                logger.warning("Enrichment lookup failed", table=table, error=str(e))
                return []
        return fetch

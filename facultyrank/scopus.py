"""
Scopus author metrics client.

Fetches an author's profile and publication list from the Elsevier
Scopus API by Scopus author id. Requires SCOPUS_API_KEY.
"""

from typing import Any, Dict, Optional

import requests

from .errors import UpstreamUnavailableError
from .logger import get_logger
from .retry import RetryError, exponential_backoff, should_retry_http_status
from .schema import validate_scopus_id

logger = get_logger()

BASE_URL = "https://api.elsevier.com/content"
MAX_DOCUMENTS = 200


@exponential_backoff(
    max_retries=2,
    base_delay=1.0,
    exceptions=(requests.exceptions.Timeout, requests.exceptions.ConnectionError),
)
def _get_with_retry(url: str, headers: Dict[str, str], params: Dict[str, Any]):
    return requests.get(url, headers=headers, params=params, timeout=15)


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class ScopusClient:
    def __init__(self, api_key: Optional[str], base_url: str = BASE_URL):
        self.api_key = api_key
        self.base_url = base_url
        if not api_key:
            logger.warning("SCOPUS_API_KEY not set. Scopus lookups will fail.")

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise UpstreamUnavailableError("Scopus API key not configured")

        url = f"{self.base_url}{path}"
        headers = {"X-ELS-APIKey": self.api_key, "Accept": "application/json"}
        try:
            resp = _get_with_retry(url, headers, params)
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "HTTPError"
            logger.error(
                "Scopus request failed",
                url=url,
                status=status,
                retryable=isinstance(status, int) and should_retry_http_status(status),
            )
            raise UpstreamUnavailableError(f"Scopus request failed ({status})") from e
        except (RetryError, requests.exceptions.RequestException, ValueError) as e:
            logger.error("Scopus request error", url=url, error=str(e))
            raise UpstreamUnavailableError(f"Scopus request error: {e}") from e

    def get_author_profile(self, scopus_id: str) -> Dict[str, Any]:
        data = self._get(f"/author/author_id/{scopus_id}", {"view": "ENHANCED"})
        author = data["author-retrieval-response"][0]
        coredata = author.get("coredata", {})
        affiliation = author.get("affiliation-current") or {}
        subject_areas = (author.get("subject-areas") or {}).get("subject-area") or []

        return {
            "scopus_id": scopus_id,
            "h_index": _to_int(author.get("h-index")),
            "document_count": _to_int(coredata.get("document-count")),
            "citation_count": _to_int(coredata.get("citation-count")),
            "affiliation_current": affiliation.get("affiliation-name"),
            "subject_areas": [area.get("$") for area in subject_areas],
            "orcid_id": coredata.get("orcid"),
        }

    def search_author_documents(self, scopus_id: str, count: int = 25) -> Dict[str, Any]:
        data = self._get(
            "/search/scopus",
            {"query": f"AU-ID({scopus_id})", "count": min(count, MAX_DOCUMENTS), "sort": "-coverDate"},
        )
        results = data.get("search-results", {})
        entries = results.get("entry") or []

        by_type = {"journal": 0, "conference": 0, "book": 0, "book_chapter": 0, "other": 0}
        publications = []
        for entry in entries:
            subtype = (entry.get("subtypeDescription") or entry.get("subtype") or "Unknown").lower()
            aggregation = entry.get("prism:aggregationType")
            if aggregation == "Journal":
                by_type["journal"] += 1
            elif "conference" in subtype:
                by_type["conference"] += 1
            elif "book chapter" in subtype:
                by_type["book_chapter"] += 1
            elif aggregation == "Book":
                by_type["book"] += 1
            else:
                by_type["other"] += 1

            publications.append({
                "eid": entry.get("eid"),
                "doi": entry.get("prism:doi"),
                "title": entry.get("dc:title"),
                "publication_name": entry.get("prism:publicationName"),
                "cover_date": entry.get("prism:coverDate"),
                "cited_by_count": _to_int(entry.get("citedby-count")),
            })

        return {
            "total_results": _to_int(results.get("opensearch:totalResults")),
            "results_retrieved": len(entries),
            "publications_by_type": by_type,
            "publications": publications,
        }

    def get_complete_author_data(self, scopus_id: Any) -> Dict[str, Any]:
        scopus_id = validate_scopus_id(scopus_id)
        profile = self.get_author_profile(scopus_id)
        documents = self.search_author_documents(scopus_id, 100)
        by_type = documents["publications_by_type"]
        return {
            "profile": profile,
            "documents": documents,
            "summary": {
                "scopus_id": scopus_id,
                "h_index": profile["h_index"],
                "total_documents": profile["document_count"],
                "total_citations": profile["citation_count"],
                "journal_papers": by_type["journal"],
                "conference_papers": by_type["conference"],
                "books": by_type["book"],
                "book_chapters": by_type["book_chapter"],
                "orcid_id": profile["orcid_id"],
                "current_affiliation": profile["affiliation_current"],
            },
        }

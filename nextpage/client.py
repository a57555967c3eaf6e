"""HTTP client for the Google Books catalog."""
import logging
from typing import Optional, Dict, Any, List

import requests

from nextpage.models import Book
from nextpage.parse import parse_books_response

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3
MAX_RESULTS_LIMIT = 40  # API limit


class CatalogClient:
    """
    Client for the Google Books volumes endpoint.

    Every failure (short query, bad status, transport error, bad JSON,
    empty response) degrades to an empty list. Requests are never retried;
    callers debounce repeated searches.
    """

    BASE_URL = "https://www.googleapis.com/books/v1/volumes"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: int = 10,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize catalog client.

        Args:
            api_key: Optional API key (increases rate limits)
            timeout: Request timeout in seconds
            session: Session to reuse, mostly for tests
        """
        self.api_key = api_key
        self.timeout = timeout

        # Create session for connection pooling
        self.session = session or requests.Session()

    def search(self, query: str, max_results: int = 10) -> List[Book]:
        """
        Free-text title search.

        Args:
            query: Search text; fewer than 3 non-blank characters is ignored
            max_results: Maximum results to return (1-40)

        Returns:
            Normalized books, empty on any failure
        """
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            logger.debug(f"Query too short, skipping request: {query!r}")
            return []

        return parse_books_response(self._get(query, max_results))

    def query_by_genre(self, genre: str, limit: int = 10) -> List[Book]:
        """Fetch up to ``limit`` books for a subject, used for recommendations."""
        return parse_books_response(self._get(f"subject:{genre}", limit))

    def _get(self, query: str, max_results: int) -> Optional[Dict[str, Any]]:
        """
        Issue a single GET against the volumes endpoint.

        Args:
            query: Value for the ``q`` parameter
            max_results: Requested page size

        Returns:
            Response JSON or None on failure
        """
        params = {
            "q": query,
            "maxResults": max(1, min(max_results, MAX_RESULTS_LIMIT)),
        }

        if self.api_key:
            params["key"] = self.api_key

        try:
            logger.info(f"Catalog request: {query}")
            response = self.session.get(self.BASE_URL, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.warning(f"Timeout for query: {query}")
            return None
        except requests.exceptions.RequestException as e:
            logger.warning(f"Request failed for query {query}: {e}")
            return None

        if response.status_code != 200:
            logger.error(f"Catalog error ({response.status_code}) for query: {query}")
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from catalog: {e}")
            return None

        if not isinstance(data, dict) or not data.get("items"):
            logger.info(f"No results for query: {query}")
            return None

        return data

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

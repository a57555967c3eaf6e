"""Async HTTP client for non-blocking catalog requests."""
import logging
from typing import List, Optional, Dict, Any

import httpx

from nextpage.client import MAX_RESULTS_LIMIT, MIN_QUERY_LENGTH
from nextpage.models import Book
from nextpage.parse import parse_books_response

logger = logging.getLogger(__name__)


class AsyncCatalogClient:
    """Async counterpart of CatalogClient for search-as-you-type and refreshes."""

    BASE_URL = "https://www.googleapis.com/books/v1/volumes"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: int = 10,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize async client.

        Args:
            api_key: Optional API key
            timeout: Request timeout
            client: httpx client to reuse (e.g. one with a mock transport)
        """
        self.api_key = api_key
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def search(self, query: str, max_results: int = 10) -> List[Book]:
        """Free-text search; short queries return [] without a request."""
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []
        return parse_books_response(await self._get(query, max_results))

    async def query_by_genre(self, genre: str, limit: int = 10) -> List[Book]:
        """Fetch candidates for a subject."""
        return parse_books_response(await self._get(f"subject:{genre}", limit))

    async def _get(self, query: str, max_results: int) -> Optional[Dict[str, Any]]:
        params = {
            "q": query,
            "maxResults": max(1, min(max_results, MAX_RESULTS_LIMIT)),
        }

        if self.api_key:
            params["key"] = self.api_key

        try:
            logger.info(f"Async request: {query}")
            response = await self.client.get(self.BASE_URL, params=params)
        except httpx.HTTPError as e:
            logger.warning(f"Async request failed for query {query}: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Status {response.status_code} for query: {query}")
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from catalog: {e}")
            return None

        if not isinstance(data, dict) or not data.get("items"):
            return None
        return data

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

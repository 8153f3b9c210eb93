"""Place search for recentering the real-world map."""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from ..errors import GeocodingError
from ..models.geo import GeoPoint

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URL = "https://nominatim.openstreetmap.org/search"


class GeocodingService:
    """Looks up the single best match for a free-text place query (Nominatim)."""

    def __init__(
        self,
        search_url: str = DEFAULT_SEARCH_URL,
        user_agent: str = "StreetGen/0.1.0",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.search_url = search_url
        self.user_agent = user_agent
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def search(self, query: str) -> Optional[GeoPoint]:
        """
        Find a place.

        Args:
            query: Free-text address or place name

        Returns:
            Coordinates of the best match, or None if nothing matched

        Raises:
            GeocodingError: If the search could not be performed
        """
        query = query.strip()
        if not query:
            return None

        try:
            response = await self.client.get(
                self.search_url,
                params={"format": "json", "q": query, "limit": 1},
                headers={"User-Agent": self.user_agent},
            )
            response.raise_for_status()
            results = response.json()
        except httpx.HTTPError as e:
            raise GeocodingError(f"Search failed: {e}") from e
        except ValueError as e:
            raise GeocodingError("Search failed: invalid response") from e

        if not isinstance(results, list) or not results:
            logger.info("No place found for %r", query)
            return None

        best = results[0]
        try:
            return GeoPoint(latitude=float(best["lat"]), longitude=float(best["lon"]))
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise GeocodingError("Search failed: malformed result") from e

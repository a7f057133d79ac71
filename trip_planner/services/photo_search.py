"""
Photo Search Service - Fetches destination photos from the Pexels API.
"""

import logging
import random
import time
from typing import Dict, List, Optional, Tuple

import httpx

from trip_planner.config.settings import PhotoSearchSettings, get_settings

logger = logging.getLogger(__name__)


class PhotoSearchService:
    """
    Service for fetching landscape photos of a trip destination.

    Never raises: missing configuration, HTTP errors and malformed responses
    all yield an empty list.
    """

    def __init__(
        self,
        settings: Optional[PhotoSearchSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings().photo_search
        self.api_url = self.settings.api_url.rstrip("/")
        self.api_key = self.settings.api_key
        self.timeout = self.settings.timeout_seconds
        self.cache_ttl = self.settings.cache_ttl_seconds
        self._transport = transport
        self._rng = rng or random.Random()
        self._cache: Dict[str, Tuple[float, List[str]]] = {}

        if not self.api_key:
            logger.warning(
                "Photo search API key not configured. "
                "Set PHOTO_SEARCH_API_KEY in .env file."
            )

    def _get_headers(self) -> dict:
        """Get headers for Pexels API requests."""
        if not self.api_key:
            return {}
        return {"Authorization": self.api_key}

    async def search_destination_photos(self, destination: str) -> List[str]:
        """
        Search for landscape photos of a destination.

        Args:
            destination: Trip destination (e.g., "Lisbon, Portugal")

        Returns:
            Up to ``per_page`` image URLs, possibly empty
        """
        destination = destination.strip()
        if not destination or not self.api_key:
            return []

        cache_key = destination.lower()
        cached = self._cache.get(cache_key)
        if cached and time.time() - cached[0] < self.cache_ttl:
            logger.debug(f"Cache hit for '{destination}'")
            return list(cached[1])

        params = {
            "query": f"{destination} travel landscape landmarks",
            "per_page": self.settings.per_page,
            "page": self._rng.randint(1, self.settings.max_page),
            "orientation": "landscape",
        }

        try:
            logger.info(f"Fetching destination photos for: {destination}")
            async with httpx.AsyncClient(
                headers=self._get_headers(),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(f"{self.api_url}/search", params=params)

            if response.status_code == 401:
                logger.error("Photo search authentication failed. Check API key.")
                return []
            if response.status_code == 429:
                logger.error("Photo search rate limit exceeded.")
                return []
            if response.status_code != 200:
                logger.warning(f"Photo search returned {response.status_code} for '{destination}'")
                return []

            urls = self._extract_urls(response.json())

        except httpx.TimeoutException:
            logger.warning(f"Timeout fetching photos for '{destination}'")
            return []
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching destination photos: {e}")
            return []

        self._cache[cache_key] = (time.time(), urls)
        logger.info(f"Found {len(urls)} photos for '{destination}'")
        return list(urls)

    def _extract_urls(self, data) -> List[str]:
        photos = data.get("photos") if isinstance(data, dict) else None
        if not isinstance(photos, list):
            return []

        urls = []
        for photo in photos:
            src = photo.get("src") if isinstance(photo, dict) else None
            if not isinstance(src, dict):
                continue
            # Prefer the largest landscape rendition
            url = src.get("large2x") or src.get("large") or src.get("original")
            if isinstance(url, str) and url.strip():
                urls.append(url)
        return urls[: self.settings.per_page]

"""Unsplash photo search used to pick post featured images."""
import logging
from functools import lru_cache

import httpx

from core.config import get_settings
from schemas.image import ImageSearchResponse
from services.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

UNSPLASH_API_URL = "https://api.unsplash.com"


class ImageSearchError(ExternalServiceError):
    """Raised when Unsplash cannot be reached or returns an error."""

    code = "image_search_failed"

    def __init__(self) -> None:
        super().__init__("Image search is unavailable")


class UnsplashClient:
    """Async client for the Unsplash search API."""

    def __init__(
        self,
        access_key: str,
        timeout: float = 10.0,
        base_url: str = UNSPLASH_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._access_key = access_key
        self._timeout = timeout
        self._base_url = base_url
        self._transport = transport

    async def search_photos(
        self,
        query: str,
        orientation: str = "landscape",
    ) -> ImageSearchResponse:
        """
        Search photos by keyword.

        Raises:
            ImageSearchError: On timeout, transport error, non-2xx status or an
                unexpected response body.
        """
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={
                    "Authorization": f"Client-ID {self._access_key}",
                    "Accept-Version": "v1",
                },
                transport=self._transport,
            ) as client:
                response = await client.get(
                    "/search/photos",
                    params={"query": query, "orientation": orientation},
                )
                response.raise_for_status()
                return ImageSearchResponse.model_validate(response.json())
        except httpx.TimeoutException as e:
            logger.warning("Unsplash search timed out for %r", query)
            raise ImageSearchError() from e
        except httpx.HTTPStatusError as e:
            logger.error("Unsplash search returned HTTP %s", e.response.status_code)
            raise ImageSearchError() from e
        except httpx.RequestError as e:
            logger.error("Unsplash search failed: %s", e)
            raise ImageSearchError() from e
        except ValueError as e:
            logger.error("Unexpected Unsplash response: %s", e)
            raise ImageSearchError() from e


@lru_cache
def get_unsplash_client() -> UnsplashClient:
    """Get the process-wide UnsplashClient built from settings."""
    settings = get_settings()
    return UnsplashClient(
        access_key=settings.unsplash_access_key,
        timeout=settings.unsplash_timeout,
    )

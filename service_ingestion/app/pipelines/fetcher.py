"""Image fetcher: download encoded image bytes over HTTP.

Exactly one GET per call; there is no retry here. Callers that want retries
wrap ``fetch`` themselves.
"""

from typing import Optional

import httpx
import structlog

from .errors import FetchError

logger = structlog.get_logger("ingestion.fetcher")


class ImageFetcher:
    """Fetch raw image bytes with a shared ``httpx.AsyncClient``.

    Parameters
    - timeout: Seconds allowed for the whole request
    - client: Pre-built client (tests pass one with ``httpx.MockTransport``)
    """

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self._owns_client = client is None
        self.http_client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def fetch(self, url: str) -> bytes:
        """Return the response body for ``url`` or raise ``FetchError``."""
        try:
            response = await self.http_client.get(url)
        except httpx.TimeoutException as exc:
            raise FetchError(f"Timed out downloading image from {url}", url=url) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(f"Failed to download image from URL: {exc}", url=url) from exc

        if not response.is_success:
            raise FetchError(
                f"Failed to download image from URL: {url} returned status {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        logger.debug("Image downloaded", url=url, size_bytes=len(response.content))
        return response.content

    async def close(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

"""
Async image loader for the renderer.

Each URL moves through loading -> success | failure. The renderer only reads
the recorded state; fetching is driven by the owner of the loader.
"""
from enum import Enum
from typing import Dict, Iterable, Optional

import httpx

from miniapp.config import settings
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)


class ImageState(str, Enum):
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


def parse_image_url(raw: Optional[str]) -> Optional[httpx.URL]:
    """Absolute http(s) URL with a host, else None"""
    if not raw or not raw.strip():
        return None
    try:
        url = httpx.URL(raw.strip())
    except (httpx.InvalidURL, TypeError, ValueError):
        return None
    if url.scheme not in ("http", "https") or not url.host:
        return None
    return url


class ImageLoader:
    """Fetches images with a shared httpx client and remembers their state"""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = None):
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout or settings.image_load_timeout
        self._states: Dict[str, ImageState] = {}

    def state_for(self, url: str) -> ImageState:
        return self._states.get(url, ImageState.LOADING)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def load(self, url: str) -> ImageState:
        if url in self._states and self._states[url] != ImageState.LOADING:
            return self._states[url]

        parsed = parse_image_url(url)
        if parsed is None:
            self._states[url] = ImageState.FAILURE
            return ImageState.FAILURE

        self._states[url] = ImageState.LOADING
        client = await self._get_client()
        try:
            response = await client.get(parsed)
        except httpx.HTTPError as e:
            logger.warning("image.load.failed", extra={"url": url, "error": str(e)})
            self._states[url] = ImageState.FAILURE
            return ImageState.FAILURE

        content_type = response.headers.get("content-type", "")
        if response.is_success and content_type.startswith("image/"):
            self._states[url] = ImageState.SUCCESS
        else:
            logger.warning(
                "image.load.rejected",
                extra={"url": url, "status": response.status_code, "content_type": content_type}
            )
            self._states[url] = ImageState.FAILURE
        return self._states[url]

    async def load_all(self, urls: Iterable[str]) -> Dict[str, ImageState]:
        return {url: await self.load(url) for url in urls}

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

"""Programmatic image loading with the client-side fallback cascade."""

from dataclasses import dataclass, field

import httpx
from loguru import logger

from app.imagestore.cascade import ImageFallbackCascade, Strategy
from app.imagestore.owner import Owner
from app.imagestore.paths import is_transient_reference

RESOLUTION_HEADER = "X-Image-Resolution"


@dataclass
class FetchedImage:
    """Outcome of loading one image reference."""

    requested_src: str
    src: str
    content: bytes | None = None
    content_type: str | None = None
    attempts: int = 0
    tried: list[Strategy] = field(default_factory=list)
    # Server answered with its placeholder, or the cascade gave up
    placeholder: bool = False

    @property
    def loaded(self) -> bool:
        return self.content is not None


class ImageClient:
    """Loads image references the way a browser ``<img>`` with retries would."""

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ImageClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def _url(self, src: str) -> str:
        if "://" in src:
            return src
        return f"{self.base_url}/{src.lstrip('/')}"

    async def _load(self, src: str) -> httpx.Response | None:
        if is_transient_reference(src):
            return None
        try:
            response = await self._client.get(self._url(src))
        except httpx.RequestError as e:
            logger.debug(f"Image request failed: {src} - {e}")
            return None
        if response.status_code != 200:
            logger.debug(f"Image request failed: {src} - HTTP {response.status_code}")
            return None
        return response

    async def fetch(self, src: str, owner: Owner | None = None) -> FetchedImage:
        """Load ``src``, retrying through the cascade until it loads or settles."""
        cascade = ImageFallbackCascade(src, self.base_url, owner)
        current = src

        while True:
            response = await self._load(current)
            if response is not None:
                return FetchedImage(
                    requested_src=src,
                    src=current,
                    content=response.content,
                    content_type=response.headers.get("content-type"),
                    attempts=cascade.attempt_count,
                    tried=list(cascade.tried),
                    placeholder=response.headers.get(RESOLUTION_HEADER, "").startswith("placeholder"),
                )

            next_src = cascade.on_error()
            if next_src is None or cascade.terminal:
                logger.info(f"Image {src!r} settled on {cascade.current_src}")
                return FetchedImage(
                    requested_src=src,
                    src=cascade.current_src,
                    attempts=cascade.attempt_count,
                    tried=list(cascade.tried),
                    placeholder=True,
                )
            current = next_src

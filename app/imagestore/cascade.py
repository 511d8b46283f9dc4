"""Client-side retry cascade for image loads.

A consumer displaying an image starts with a candidate URL and calls
``on_error`` each time a load fails. Strategies are tried in a fixed order,
each at most once, and the cascade settles on a permanent placeholder after
at most ``max_attempts`` failures.
"""

from enum import Enum

from app.imagestore.owner import Owner
from app.imagestore.paths import (
    UPLOADS_URL_PREFIX,
    InvalidFilenameError,
    build_path,
    is_transient_reference,
    to_upload_url,
)

DEFAULT_FINAL_PLACEHOLDER = "/assets/placeholder-unavailable.svg"
DEFAULT_PROCESSING_PLACEHOLDER = "/assets/placeholder-processing.svg"
MAX_ATTEMPTS = 4


class Strategy(str, Enum):
    STRIP_LEADING_SLASH = "strip_leading_slash"
    PROCESSING_PLACEHOLDER = "processing_placeholder"
    ORIGIN_ABSOLUTE = "origin_absolute"
    CANONICAL_UPLOADS = "canonical_uploads"


def _is_absolute_url(src: str) -> bool:
    return "://" in src.split("?", 1)[0]


def _filename_of(src: str) -> str:
    return src.split("?", 1)[0].split("#", 1)[0].rstrip("/").rsplit("/", 1)[-1]


class ImageFallbackCascade:
    """Bounded, single-consumer retry state machine."""

    def __init__(
        self,
        src: str,
        origin: str,
        owner: Owner | None = None,
        final_placeholder: str = DEFAULT_FINAL_PLACEHOLDER,
        processing_placeholder: str = DEFAULT_PROCESSING_PLACEHOLDER,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.origin = origin.rstrip("/")
        self.owner = owner
        self.final_placeholder = final_placeholder
        self.processing_placeholder = processing_placeholder
        self.max_attempts = max_attempts
        self.reset(src)

    def reset(self, src: str) -> None:
        """Start over for a new requested source."""
        self.requested_src = src
        self.current_src = src
        self.attempt_count = 0
        self.tried: list[Strategy] = []
        # Every source handed out so far, starting with the requested one
        self.sources: list[str] = [src]
        self._position = 0
        self.terminal = False

    def _apply(self, strategy: Strategy) -> str | None:
        src = self.current_src
        if strategy is Strategy.STRIP_LEADING_SLASH:
            if src.startswith(UPLOADS_URL_PREFIX):
                return src[1:]
            return None

        if strategy is Strategy.PROCESSING_PLACEHOLDER:
            return self.processing_placeholder if is_transient_reference(src) else None

        if strategy is Strategy.ORIGIN_ABSOLUTE:
            if _is_absolute_url(src):
                return None
            return f"{self.origin}{src}" if src.startswith("/") else f"{self.origin}/{src}"

        filename = _filename_of(src)
        if not filename:
            return None
        if self.owner is not None:
            try:
                return to_upload_url(build_path(self.owner, filename))
            except InvalidFilenameError:
                return None
        return f"{UPLOADS_URL_PREFIX}{filename}"

    def _settle(self, src: str) -> str:
        self.current_src = src
        self.terminal = True
        return src

    def on_error(self) -> str | None:
        """Next source to try after a failed load, or None once settled."""
        if self.terminal:
            return None

        self.attempt_count += 1
        if self.attempt_count >= self.max_attempts:
            return self._settle(self.final_placeholder)

        strategies = list(Strategy)
        for index in range(self._position, len(strategies)):
            strategy = strategies[index]
            candidate = self._apply(strategy)
            if candidate is None or candidate in self.sources:
                continue
            self._position = index + 1
            self.tried.append(strategy)
            self.sources.append(candidate)
            if strategy is Strategy.PROCESSING_PLACEHOLDER:
                # blob: references never become valid again
                return self._settle(candidate)
            self.current_src = candidate
            return candidate

        return self._settle(self.final_placeholder)

"""
Image URL Resolver - Profile image URLs with fallback chain

Profile images are referenced by the backend either as absolute URLs or as
bare filenames/relative paths whose storage location changed over time.
For relative references the resolver produces a primary URL plus a fixed,
ordered chain of alternate locations; absolute URLs have no fallbacks.

ImageLoadCursor tracks one resolution attempt: each candidate is tried at
most once and the exhaustion callback fires exactly once, after which the
caller shows the initials placeholder.
"""

import logging
import re
from typing import Callable, Optional

from receitas.config import settings

logger = logging.getLogger(__name__)

# Only these count as absolute; "foto:1.jpg" is still a filename
SCHEME_PATTERN = re.compile(r"^(?:https?://|data:|blob:)", re.IGNORECASE)

# Alternate storage/API conventions, tried in this order after the primary
FALLBACK_PATHS = (
    "/api/image",
    "/api/users/photo",
    "/uploads",
    "/images",
    "/static",
)

IMAGE_FIELDS = ("profileImageAPI", "profilePhoto")


def is_absolute(ref: str) -> bool:
    return bool(SCHEME_PATTERN.match(ref))


class ImageUrlResolver:
    def __init__(
        self, api_base: Optional[str] = None, primary_path: Optional[str] = None
    ):
        self.api_base = (api_base or settings.api_base).rstrip("/")
        self.primary_path = "/" + (primary_path or settings.IMAGE_PRIMARY_PATH).strip("/")

    def primary_url(self, ref: Optional[str]) -> Optional[str]:
        ref = (ref or "").strip()
        if not ref:
            return None
        if is_absolute(ref):
            return ref
        return f"{self.api_base}{self.primary_path}/{_filename(ref)}"

    def fallback_chain(self, ref: Optional[str]) -> list[str]:
        """Alternate URLs for a relative reference, excluding the primary."""
        ref = (ref or "").strip()
        if not ref or is_absolute(ref):
            return []

        filename = _filename(ref)
        urls = [f"{self.api_base}{path}/{filename}" for path in FALLBACK_PATHS]
        if ref.startswith("/"):
            urls.append(f"{self.api_base}{ref}")

        primary = self.primary_url(ref)
        chain: list[str] = []
        for url in urls:
            if url != primary and url not in chain:
                chain.append(url)
        return chain

    def candidates(self, ref: Optional[str]) -> list[str]:
        primary = self.primary_url(ref)
        if primary is None:
            return []
        return [primary, *self.fallback_chain(ref)]

    def normalize_url(self, ref: Optional[str]) -> Optional[str]:
        """
        Single best-guess URL for a reference.

        Absolute URLs are kept, "/path" is joined to the API base and a bare
        filename goes to the primary storage path.
        """
        ref = (ref or "").strip()
        if not ref:
            return None
        if is_absolute(ref):
            return ref
        if ref.startswith("/"):
            return f"{self.api_base}{ref}"
        return f"{self.api_base}{self.primary_path}/{ref}"

    def normalize_user_image_data(self, user: Optional[dict]) -> Optional[dict]:
        """Copy of a user dict with its image fields turned into full URLs."""
        if not user:
            return user
        normalized = dict(user)
        for field in IMAGE_FIELDS:
            if user.get(field):
                normalized[field] = self.normalize_url(user[field])
        return normalized


def _filename(ref: str) -> str:
    return ref.rstrip("/").split("/")[-1]


class ImageLoadCursor:
    """
    Retry state for loading one image reference.

    Usage:
        cursor = ImageLoadCursor(resolver, ref, on_exhausted=show_initials)
        url = cursor.start()
        # on each load error:
        url = cursor.on_load_error(url)  # None once exhausted
    """

    def __init__(
        self,
        resolver: ImageUrlResolver,
        ref: Optional[str],
        on_exhausted: Callable[[], None],
    ):
        self.resolver = resolver
        self.ref = ref
        self.on_exhausted = on_exhausted
        self.candidates = resolver.candidates(ref)
        self.tried: set[str] = set()
        self.current: Optional[str] = None
        self.exhausted = False

    def start(self) -> Optional[str]:
        """First URL to load; fires on_exhausted at once when there is none."""
        return self._advance(-1)

    def on_load_error(self, current_url: Optional[str]) -> Optional[str]:
        """
        Next URL after `current_url` failed, or None when the chain is consumed.

        A URL outside the candidate list (or None) restarts the scan from the
        beginning, skipping URLs already tried.
        """
        if self.exhausted:
            return None
        if current_url:
            self.tried.add(current_url)
        try:
            index = self.candidates.index(current_url)
        except ValueError:
            index = -1
        logger.debug(
            "Image failed to load: %s (candidate %d/%d)",
            current_url,
            index + 1,
            len(self.candidates),
        )
        return self._advance(index)

    def _advance(self, index: int) -> Optional[str]:
        for url in self.candidates[index + 1 :]:
            if url not in self.tried:
                self.tried.add(url)
                self.current = url
                return url
        self.current = None
        self._exhaust()
        return None

    def _exhaust(self) -> None:
        if self.exhausted:
            return
        self.exhausted = True
        logger.info("All image URLs failed for %s", self.ref)
        self.on_exhausted()

"""Review board — server-first review repository with an on-disk fallback.

The JSON cache file is never the source of truth: every successful fetch
from the API overwrites it, and anything read from it is flagged stale.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from guesthouse.client.api_client import GuesthouseClient
from guesthouse.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass
class ReviewListing:
    reviews: list[dict]
    stale: bool = False


class ReviewBoard:
    def __init__(self, api: GuesthouseClient, cache_path: Path | str):
        self.api = api
        self.cache_path = Path(cache_path)

    def _read_cache(self) -> list[dict]:
        try:
            data = json.loads(self.cache_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.warning(f"Review cache unreadable, ignoring it: {e}")
            return []
        return data if isinstance(data, list) else []

    def _write_cache(self, reviews: list[dict]):
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            self.cache_path.write_text(json.dumps(reviews, default=str), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Review cache not written: {e}")

    async def list_reviews(self) -> ReviewListing:
        """Newest-first reviews from the API, or the cached copy when it is unreachable."""
        try:
            reviews = await self.api.list_reviews()
        except UpstreamUnavailable as e:
            logger.warning(f"Error fetching reviews, using local cache: {e}")
            return ReviewListing(reviews=self._read_cache(), stale=True)

        self._write_cache(reviews)
        return ReviewListing(reviews=reviews, stale=False)

    async def submit(self, name: str, country: str, comment: str, rating: int) -> dict:
        """Post a review. When the API is down the review is kept locally only.

        Validation errors from the API propagate; only connectivity failures
        fall back to the cache.
        """
        try:
            review = await self.api.post_review(name, country, comment, rating)
        except UpstreamUnavailable as e:
            logger.warning(f"Error saving review, keeping it locally: {e}")
            review = {
                "name": name,
                "country": country,
                "comment": comment,
                "rating": rating,
                "date": datetime.now(timezone.utc).isoformat(),
                "localOnly": True,
            }

        self._write_cache([review, *self._read_cache()])
        return review

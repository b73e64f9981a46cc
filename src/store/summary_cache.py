"""
Per-article summary cache stored as one document per ``(date, article_id)``.

Entries are create-only: the first committed summary wins and is never
overwritten.
"""

from typing import Optional

from pydantic import ValidationError

from src.store.document_store import (
    DocumentNotFoundError,
    DocumentStore,
    VersionConflictError,
)
from src.utils.constants import ValidationConstants
from src.utils.logger import logger
from src.utils.models import SummaryCacheEntry


class SummaryCache:
    """Content-addressed cache of AI summaries"""

    def __init__(self, store: DocumentStore, directory: str = "data/summaries"):
        self.store = store
        self.directory = directory.rstrip("/")

    @staticmethod
    def key(date: str, article_id: int) -> str:
        """Cache key ``{date}_{article_id}``; date must be YYYY-MM-DD."""
        if not ValidationConstants.DATE_PATTERN.match(date or ""):
            raise ValueError(f"Date must be in YYYY-MM-DD format: {date!r}")
        return f"{date}_{int(article_id)}"

    def path_for(self, date: str, article_id: int) -> str:
        return f"{self.directory}/{self.key(date, article_id)}.json"

    def get(self, date: str, article_id: int) -> Optional[SummaryCacheEntry]:
        """
        Look up a cached summary.

        Returns:
            The entry, or None on a miss (absent or unreadable entry)
        """
        path = self.path_for(date, article_id)
        try:
            document = self.store.read(path)
        except DocumentNotFoundError:
            return None

        try:
            return SummaryCacheEntry.model_validate(document.body)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed cache entry {path}: {e}")
            return None

    def put_if_absent(self, date: str, article_id: int, entry: SummaryCacheEntry) -> bool:
        """
        Create the cache entry unless one already exists.

        Returns:
            True if this call created the entry, False if it was already cached
        """
        key = self.key(date, article_id)
        path = self.path_for(date, article_id)
        try:
            self.store.write(
                path,
                entry.model_dump(mode="json"),
                expected_version=None,
                message=f"Cache summary: {key}",
            )
        except VersionConflictError:
            logger.info(f"Summary already cached: {key}")
            return False

        logger.info(f"Cache saved: {key}")
        return True

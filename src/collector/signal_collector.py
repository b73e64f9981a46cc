"""
Session-scoped signal collector.

Created on page load and torn down on navigation. Clicks and dislikes are
queued in memory and flushed in batches; two durable key sets (already-sent
positives, currently-disliked articles) are rehydrated from the key store at
construction so dedup survives reloads.

Delivery guarantees:

- positive signals are emitted at most once per identity key, because the key
  is persisted before the signal is queued, not after delivery
- ``flush`` is best-effort and unconfirmed (page teardown)
- ``flush_and_wait`` is best-effort bounded by a timeout; the request keeps
  running after the timeout so it can still land
"""

import asyncio
from datetime import date, timedelta
from typing import List, Optional, Set, Tuple, Union

from src.collector.key_store import KeyStore
from src.collector.transport import SignalTransport
from src.utils.constants import CollectorConstants, HTTPConstants
from src.utils.logger import logger
from src.utils.models import ArticleRef, Signal, SignalType

QueuedSignal = Tuple[str, Signal]


class SignalCollector:
    """Queues user signals and flushes them to the ingestion endpoint"""

    def __init__(
        self,
        key_store: KeyStore,
        transport: SignalTransport,
        viewing_date: Optional[str] = None,
        tracking_enabled: bool = True,
        flush_timeout: float = HTTPConstants.SIGNAL_FLUSH_TIMEOUT,
    ):
        self.key_store = key_store
        self.transport = transport
        self.viewing_date = viewing_date
        self.tracking_enabled = tracking_enabled
        self.flush_timeout = flush_timeout

        self._queue: List[QueuedSignal] = []
        self._in_flight: Set[asyncio.Task] = set()
        self.sent_positive_keys = key_store.load_set(CollectorConstants.SENT_POSITIVE_KEY)
        self.disliked_keys = key_store.load_set(CollectorConstants.DISLIKED_KEY)

    @property
    def current_date(self) -> str:
        """Date of the candidates being viewed, defaulting to today (local)."""
        return self.viewing_date or date.today().isoformat()

    @property
    def pending(self) -> List[Signal]:
        """Signals queued but not yet flushed."""
        return [signal for _, signal in self._queue]

    def identity_key(self, article: ArticleRef) -> str:
        return f"{self.current_date}_{article.number}"

    def navigate_date(self, offset: int) -> bool:
        """
        Move the viewing date by offset days; dates after today are refused.

        Returns:
            True if the viewing date changed
        """
        target = date.fromisoformat(self.current_date) + timedelta(days=offset)
        if target > date.today():
            return False
        self.viewing_date = target.isoformat()
        return True

    def is_disliked(self, article: Union[ArticleRef, dict]) -> bool:
        return self.identity_key(self._as_article(article)) in self.disliked_keys

    def track_click(self, article: Union[ArticleRef, dict]) -> bool:
        """
        Queue a positive signal unless this article was already clicked today.

        Returns:
            True if a signal was queued
        """
        if not self.tracking_enabled:
            return False

        article = self._as_article(article)
        key = self.identity_key(article)
        if key in self.sent_positive_keys:
            return False

        self.sent_positive_keys.add(key)
        self.key_store.save_set(CollectorConstants.SENT_POSITIVE_KEY, self.sent_positive_keys)

        self._queue.append((key, self._signal(article, SignalType.POSITIVE)))
        logger.debug(f"Signal queued (positive): {article.title}")
        return True

    def track_dislike(self, article: Union[ArticleRef, dict]) -> Optional[bool]:
        """
        Toggle the "not interested" mark on an article.

        Returns:
            True if the dislike was added, False if it was removed,
            None when tracking is disabled
        """
        if not self.tracking_enabled:
            return None

        article = self._as_article(article)
        key = self.identity_key(article)

        if key in self.disliked_keys:
            self.disliked_keys.discard(key)
            self.key_store.save_set(CollectorConstants.DISLIKED_KEY, self.disliked_keys)
            # Cancel the negative signal if it never left the client
            self._queue = [
                (queued_key, signal)
                for queued_key, signal in self._queue
                if not (queued_key == key and signal.type == SignalType.NEGATIVE)
            ]
            logger.debug(f"Dislike removed: {article.title}")
            return False

        self.disliked_keys.add(key)
        self.key_store.save_set(CollectorConstants.DISLIKED_KEY, self.disliked_keys)
        self._queue.append((key, self._signal(article, SignalType.NEGATIVE)))
        logger.debug(f"Signal queued (negative): {article.title}")
        return True

    def flush(self) -> bool:
        """
        Send queued signals through the fire-and-forget beacon.

        Use on page hide/unload. Delivery is not confirmed.

        Returns:
            Whether the beacon was handed off (False when nothing was queued)
        """
        batch = self._take_batch()
        if not batch:
            return False

        sent = self.transport.send_beacon(self._payload(batch))
        logger.info(f"Signals flushed via beacon ({len(batch)}): {sent}")
        return sent

    async def flush_and_wait(self, timeout: Optional[float] = None) -> None:
        """
        Send queued signals and wait for completion, at most ``timeout`` seconds.

        Use before a navigation triggered by the same user action. The request
        is not cancelled on timeout; it keeps running in the background.
        """
        batch = self._take_batch()
        if not batch:
            return

        task = asyncio.ensure_future(self.transport.post(self._payload(batch)))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

        if timeout is None:
            timeout = self.flush_timeout
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Signal flush still in flight after {timeout}s, continuing")

    def _take_batch(self) -> List[Signal]:
        # Swap before any await: later signals belong to the next flush
        batch, self._queue = self._queue, []
        return [signal for _, signal in batch]

    @staticmethod
    def _payload(batch: List[Signal]) -> dict:
        return {"signals": [signal.to_log_entry() for signal in batch]}

    @staticmethod
    def _as_article(article: Union[ArticleRef, dict]) -> ArticleRef:
        if isinstance(article, ArticleRef):
            return article
        return ArticleRef.model_validate(article)

    @staticmethod
    def _signal(article: ArticleRef, signal_type: SignalType) -> Signal:
        return Signal(
            type=signal_type,
            article_id=article.number,
            title=article.title,
            url=article.url,
            category=article.category,
            source=article.source,
        )

"""
Click/signal log for Briefly Tracker.

The whole history is a single document ``{clicks: [...], created_at}`` that
only ever grows. Batches are appended with one compare-and-swap commit each,
so a batch is either fully in the log or not at all.
"""

from dataclasses import dataclass
from typing import List, Sequence

from pydantic import ValidationError

from src.store.document_store import DocumentStore, VersionConflictError
from src.utils.logger import logger
from src.utils.models import Signal, SignalType, utc_now_iso


# Custom Exceptions
class ClickLogError(Exception):
    """Base exception for click log errors."""

    pass


class WriteConflictError(ClickLogError):
    """Raised when a batch could not be committed because of concurrent writers."""

    pass


@dataclass
class ClickHistory:
    """Valid signals of the log plus the number of stored entries."""

    signals: List[Signal]
    total: int


def empty_click_log() -> dict:
    """Body of a log that has never been written."""
    return {"clicks": [], "created_at": utc_now_iso()}


def describe_batch(signals: Sequence[Signal]) -> str:
    """Commit message for a batch, e.g. ``Track signals: +2 positive, -1 negative``."""
    positive = sum(1 for s in signals if s.type == SignalType.POSITIVE)
    negative = sum(1 for s in signals if s.type == SignalType.NEGATIVE)

    parts = []
    if positive:
        parts.append(f"+{positive} positive")
    if negative:
        parts.append(f"-{negative} negative")
    return f"Track signals: {', '.join(parts)}"


class ClickLog:
    """Append-only log of click and dislike signals"""

    def __init__(self, store: DocumentStore, path: str = "data/user_clicks.json"):
        self.store = store
        self.path = path

    def append_batch(self, signals: Sequence[Signal]) -> int:
        """
        Append signals at the tail, preserving their order.

        Args:
            signals: Signals from one client flush

        Returns:
            Total number of signals in the log after the commit

        Raises:
            ValueError: If signals is empty
            WriteConflictError: If the commit still conflicted after the retry
        """
        if not signals:
            raise ValueError("signals array is required")

        return self._append(list(signals), describe_batch(signals))

    def append_click(self, signal: Signal) -> int:
        """Append a single click (legacy per-click endpoint)."""
        return self._append([signal], f"Track click: {signal.title or signal.article_id}")

    def _append(self, signals: List[Signal], message: str) -> int:
        entries = [signal.to_log_entry() for signal in signals]

        def add_entries(body):
            if not isinstance(body, dict):
                body = empty_click_log()
            clicks = body.get("clicks")
            if not isinstance(clicks, list):
                clicks = []
            clicks.extend(entries)
            body["clicks"] = clicks
            body.setdefault("created_at", utc_now_iso())
            return body

        try:
            document = self.store.update(
                self.path, add_entries, message, default_factory=empty_click_log
            )
        except VersionConflictError as e:
            raise WriteConflictError(
                f"Could not append {len(entries)} signals to {self.path}: {e}"
            ) from e

        total = len(document.body["clicks"])
        logger.info(f"{message} (total {total})")
        return total

    def read_history(self) -> ClickHistory:
        """
        Read the full signal history without clearing it.

        ``total`` counts every stored entry, including ones that do not
        validate as signals; only valid entries are returned in ``signals``.
        """
        document = self.store.read_or_default(self.path, empty_click_log)
        raw_clicks = document.body.get("clicks") if isinstance(document.body, dict) else None
        if not isinstance(raw_clicks, list):
            return ClickHistory(signals=[], total=0)

        signals = []
        for index, entry in enumerate(raw_clicks):
            try:
                signals.append(Signal.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed log entry #{index} in {self.path}: {e}")
        return ClickHistory(signals=signals, total=len(raw_clicks))

    def drain(self) -> List[Signal]:
        """Valid signals of the full history; malformed entries are skipped."""
        return self.read_history().signals

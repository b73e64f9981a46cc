"""
Document store contract for Briefly Tracker.

A document is one JSON body at a repository path plus an opaque version token.
Writes are compare-and-swap: the caller presents the version it last observed
(or None for "never existed") and the store rejects the write if the current
version differs. ``update`` wraps the read-modify-write cycle with a bounded
retry so callers never hand-roll conflict loops.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from src.utils.constants import StoreConstants
from src.utils.logger import logger
from src.utils.models import Document


# Custom Exceptions
class StoreError(Exception):
    """Base exception for document store errors."""

    pass


class DocumentNotFoundError(StoreError):
    """Raised when no document exists at the path."""

    def __init__(self, path: str):
        super().__init__(f"Document not found: {path}")
        self.path = path


class VersionConflictError(StoreError):
    """Raised when the remote version differs from the expected version."""

    def __init__(self, path: str, expected_version: Optional[str], detail: str = ""):
        message = f"Version conflict on {path} (expected {expected_version or 'absent'})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.path = path
        self.expected_version = expected_version


class TransportError(StoreError):
    """Raised on network failures, unexpected statuses or undecodable responses."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RetryPolicy:
    """How many times a conflicting read-modify-write is retried automatically."""

    max_retries: int = StoreConstants.MAX_WRITE_RETRIES

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


MessageSpec = Union[str, Callable[[Any], str]]


class DocumentStore(ABC):
    """Read/write JSON documents with compare-and-swap semantics."""

    def __init__(self, retry_policy: Optional[RetryPolicy] = None):
        self.retry_policy = retry_policy or RetryPolicy()

    @abstractmethod
    def read(self, path: str) -> Document:
        """
        Read the document at path.

        Raises:
            DocumentNotFoundError: If the path does not exist
            TransportError: On any other failure
        """

    @abstractmethod
    def write(
        self, path: str, body: Any, expected_version: Optional[str], message: str
    ) -> str:
        """
        Commit body at path if the current version equals expected_version.

        Args:
            path: Document path
            body: JSON-serializable body (never contains the version)
            expected_version: Last observed version, None if never observed
            message: Human-readable description of the change (audit record)

        Returns:
            The new version token

        Raises:
            VersionConflictError: If the remote version differs
            TransportError: On any other failure
        """

    def close(self) -> None:
        """Release transport resources, if any."""

    def read_or_default(
        self, path: str, default_factory: Callable[[], Any]
    ) -> Document:
        """Read path, or synthesize ``default_factory()`` with version None."""
        try:
            return self.read(path)
        except DocumentNotFoundError:
            logger.debug(f"{path} absent, using default body")
            return Document(path=path, body=default_factory(), version=None)

    def update(
        self,
        path: str,
        mutate: Callable[[Any], Any],
        message: MessageSpec,
        default_factory: Callable[[], Any],
        current: Optional[Document] = None,
    ) -> Document:
        """
        Read-modify-write with bounded retry on version conflicts.

        ``mutate`` receives a deep copy of the current body and returns the new
        body; it must be safe to call again on a fresher body. ``current`` may
        carry a fresh observation to skip the first read.

        Returns:
            The committed document with its new version

        Raises:
            VersionConflictError: If the last allowed attempt still conflicts
        """
        attempts = self.retry_policy.max_attempts

        for attempt in range(1, attempts + 1):
            if current is None or attempt > 1:
                current = self.read_or_default(path, default_factory)

            new_body = mutate(copy.deepcopy(current.body))
            commit_message = message(new_body) if callable(message) else message

            try:
                version = self.write(path, new_body, current.version, commit_message)
            except VersionConflictError:
                if attempt >= attempts:
                    logger.error(f"Giving up on {path} after {attempt} conflicting attempts")
                    raise
                logger.warning(
                    f"Version conflict on {path} (attempt {attempt}/{attempts}), re-reading"
                )
                continue

            return Document(path=path, body=new_body, version=version)

        # Unreachable: the loop either returns or re-raises
        raise VersionConflictError(path, current.version if current else None)


def require_message(message: str) -> str:
    """Commit messages are mandatory audit records."""
    if not message or not message.strip():
        raise ValueError("A commit message describing the change is required")
    return message.strip()

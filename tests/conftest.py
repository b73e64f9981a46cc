"""
Shared pytest fixtures.

Provides an in-memory document store with the same compare-and-swap contract
as the GitHub contents store, plus hooks to inject conflicts and simulate
concurrent writers.
"""

import copy
import hashlib
import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from src.store.document_store import (
    DocumentNotFoundError,
    DocumentStore,
    RetryPolicy,
    VersionConflictError,
    require_message,
)
from src.utils.models import Document


class InMemoryContentsStore(DocumentStore):
    """Dict-backed store; versions are content hashes like git blob shas."""

    def __init__(self, retry_policy: Optional[RetryPolicy] = None):
        super().__init__(retry_policy)
        self.files: Dict[str, Tuple[Any, str]] = {}
        self.commits: List[Tuple[str, str]] = []
        self.reads = 0
        self.forced_conflicts = 0
        # Called with the path just before each write is checked
        self.before_write: Optional[Callable[[str], None]] = None
        self._counter = 0

    def _next_version(self, body: Any) -> str:
        self._counter += 1
        raw = json.dumps(body, sort_keys=True) + str(self._counter)
        return hashlib.sha1(raw.encode("utf-8")).hexdigest()

    def seed(self, path: str, body: Any) -> str:
        version = self._next_version(body)
        self.files[path] = (copy.deepcopy(body), version)
        return version

    def body(self, path: str) -> Any:
        return copy.deepcopy(self.files[path][0])

    def read(self, path: str) -> Document:
        self.reads += 1
        if path not in self.files:
            raise DocumentNotFoundError(path)
        body, version = self.files[path]
        return Document(path=path, body=copy.deepcopy(body), version=version)

    def write(self, path: str, body: Any, expected_version: Optional[str], message: str) -> str:
        message = require_message(message)
        if self.before_write:
            hook, self.before_write = self.before_write, None
            hook(path)

        if self.forced_conflicts > 0:
            self.forced_conflicts -= 1
            raise VersionConflictError(path, expected_version, "forced")

        current_version = self.files[path][1] if path in self.files else None
        if current_version != expected_version:
            raise VersionConflictError(path, expected_version)

        version = self._next_version(body)
        self.files[path] = (copy.deepcopy(body), version)
        self.commits.append((path, message))
        return version


@pytest.fixture
def memory_store():
    """Empty in-memory contents store."""
    return InMemoryContentsStore()


@pytest.fixture
def profile_memory_store():
    """Separate store standing in for the bot repository."""
    return InMemoryContentsStore()


@pytest.fixture
def make_store():
    """Factory for stores with a custom retry policy."""
    return InMemoryContentsStore

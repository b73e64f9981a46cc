"""
GitHub contents-API document store.

Each document is a file in a repository; its blob sha is the version token.
GitHub rejects a PUT whose ``sha`` does not match the current file (409), or
that omits ``sha`` for an existing file (422), which gives us compare-and-swap
without any server of our own.
"""

import base64
import json
from typing import Any, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from src.store.document_store import (
    DocumentNotFoundError,
    DocumentStore,
    RetryPolicy,
    TransportError,
    VersionConflictError,
    require_message,
)
from src.utils.config import Settings
from src.utils.constants import HTTPConstants, StoreConstants
from src.utils.logger import logger
from src.utils.models import Document


class GitHubContentsStore(DocumentStore):
    """Document store backed by one GitHub repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        timeout: int = HTTPConstants.GITHUB_TIMEOUT,
        retry_policy: Optional[RetryPolicy] = None,
        session: Optional[requests.Session] = None,
        api_url: str = StoreConstants.GITHUB_API_URL,
    ):
        super().__init__(retry_policy)
        if not token:
            raise ValueError("GITHUB_TOKEN not configured")

        self.owner = owner
        self.repo = repo
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")
        self.session = session or self._build_session()
        self.session.headers.update(
            {
                "Authorization": f"token {token}",
                "Accept": StoreConstants.GITHUB_ACCEPT,
                "User-Agent": HTTPConstants.USER_AGENT,
            }
        )

    @classmethod
    def from_settings(cls, settings: Settings, repo: Optional[str] = None) -> "GitHubContentsStore":
        """Build a store for ``repo`` (defaults to the tracker repo)."""
        return cls(
            owner=settings.github_owner,
            repo=repo or settings.github_repo,
            token=settings.github_token,
            timeout=settings.github_timeout,
        )

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()

        # Transport retries for idempotent reads only; a PUT is a CAS attempt
        # and must surface its result to the caller.
        retry_strategy = Retry(
            total=HTTPConstants.MAX_RETRIES,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            backoff_factor=HTTPConstants.RETRY_BACKOFF_FACTOR,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def _contents_url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{quote(path.lstrip('/'))}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise TransportError(f"GitHub request timed out: {method} {url}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"GitHub request failed: {method} {url}: {e}") from e

    def read(self, path: str) -> Document:
        response = self._request("GET", self._contents_url(path))

        if response.status_code == 404:
            raise DocumentNotFoundError(path)
        if not response.ok:
            raise TransportError(
                f"GitHub API error: {response.status_code} for {self.repo}/{path}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            sha = data["sha"]
            if data.get("encoding") == StoreConstants.LARGE_FILE_ENCODING or (
                not data.get("content") and data.get("size", 0) > 0
            ):
                raw = self._read_blob(sha)
            else:
                raw = base64.b64decode(data["content"])
            body = json.loads(raw.decode("utf-8"))
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"Undecodable document at {self.repo}/{path}: {e}") from e

        if isinstance(body, dict):
            # Older writers leaked the sha into the body
            body.pop("_sha", None)

        return Document(path=path, body=body, version=sha)

    def _read_blob(self, sha: str) -> bytes:
        """Fetch a file over 1MB through the git blobs API."""
        url = f"{self.api_url}/repos/{self.owner}/{self.repo}/git/blobs/{sha}"
        response = self._request("GET", url)
        if not response.ok:
            raise TransportError(
                f"GitHub blob fetch failed: {response.status_code} for {sha}",
                status_code=response.status_code,
            )
        return base64.b64decode(response.json()["content"])

    def write(
        self, path: str, body: Any, expected_version: Optional[str], message: str
    ) -> str:
        message = require_message(message)
        encoded = json.dumps(
            body, ensure_ascii=False, indent=StoreConstants.JSON_INDENT
        ).encode("utf-8")

        payload = {
            "message": message,
            "content": base64.b64encode(encoded).decode("ascii"),
        }
        if expected_version:
            payload["sha"] = expected_version

        response = self._request("PUT", self._contents_url(path), json=payload)

        if self._is_conflict(response):
            raise VersionConflictError(path, expected_version, response.text[:200])
        if expected_version and response.status_code == 404:
            # The file we observed has been deleted since
            raise VersionConflictError(path, expected_version, "document no longer exists")
        if not response.ok:
            raise TransportError(
                f"Failed to save to GitHub: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            new_version = response.json()["content"]["sha"]
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"Unexpected PUT response for {self.repo}/{path}: {e}") from e

        logger.info(f"Committed {self.repo}/{path} ({message})")
        return new_version

    @staticmethod
    def _is_conflict(response: requests.Response) -> bool:
        if response.status_code == StoreConstants.CONFLICT_STATUS:
            return True
        if response.status_code != StoreConstants.VALIDATION_STATUS:
            return False
        try:
            detail = str(response.json().get("message", ""))
        except (AttributeError, ValueError):
            detail = response.text
        return StoreConstants.SHA_FIELD in detail.lower()

    def close(self) -> None:
        """Close the HTTP session"""
        self.session.close()

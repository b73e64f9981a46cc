"""
FastAPI dependencies for the Briefly Tracker API.

Provides dependency injection for stores, services and cron authentication.
Every request gets fresh collaborators; no state is shared between requests
beyond what lives in the document store.
"""

import hmac
from typing import Iterator, Optional

from fastapi import Depends, Header, HTTPException, status

from src.learning.preference_learner import PreferenceLearner
from src.store.click_log import ClickLog
from src.store.document_store import DocumentStore
from src.store.github_store import GitHubContentsStore
from src.store.preference_store import PreferenceStore
from src.store.summary_cache import SummaryCache
from src.summarizers.article_summarizer import ArticleSummarizer
from src.summarizers.llm_client import LLMClient
from src.utils.config import Settings, settings


def get_settings() -> Settings:
    return settings


def get_tracker_store(config: Settings = Depends(get_settings)) -> Iterator[DocumentStore]:
    """Store for the tracker repository (click log, summary cache)."""
    store = GitHubContentsStore.from_settings(config)
    try:
        yield store
    finally:
        store.close()


def get_profile_store(config: Settings = Depends(get_settings)) -> Iterator[DocumentStore]:
    """Store for the bot repository (preference profile)."""
    store = GitHubContentsStore.from_settings(config, repo=config.profile_repo)
    try:
        yield store
    finally:
        store.close()


def get_llm_client(config: Settings = Depends(get_settings)) -> LLMClient:
    return LLMClient(config)


def get_click_log(
    store: DocumentStore = Depends(get_tracker_store),
    config: Settings = Depends(get_settings),
) -> ClickLog:
    return ClickLog(store, config.clicks_path)


def get_summarizer(
    store: DocumentStore = Depends(get_tracker_store),
    llm: LLMClient = Depends(get_llm_client),
    config: Settings = Depends(get_settings),
) -> ArticleSummarizer:
    return ArticleSummarizer(
        SummaryCache(store, config.summaries_dir),
        llm,
        fetch_timeout=config.article_fetch_timeout,
    )


def get_learner(
    click_log: ClickLog = Depends(get_click_log),
    profile_store: DocumentStore = Depends(get_profile_store),
    llm: LLMClient = Depends(get_llm_client),
    config: Settings = Depends(get_settings),
) -> PreferenceLearner:
    return PreferenceLearner(click_log, PreferenceStore(profile_store, config.profile_path), llm)


def require_cron_secret(
    authorization: Optional[str] = Header(None),
    config: Settings = Depends(get_settings),
) -> None:
    """
    Require ``Authorization: Bearer <CRON_SECRET>`` when a secret is configured.

    Raises:
        HTTPException: 401 if the bearer token does not match
    """
    if not config.cron_secret:
        return

    expected = f"Bearer {config.cron_secret}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


__all__ = [
    "get_settings",
    "get_tracker_store",
    "get_profile_store",
    "get_llm_client",
    "get_click_log",
    "get_summarizer",
    "get_learner",
    "require_cron_secret",
]

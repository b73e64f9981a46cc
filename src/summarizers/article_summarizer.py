"""
Article summaries with a GitHub-backed cache.

The cache is consulted first; on a miss the article is fetched, reduced to its
main text and summarized by the LLM. Caching is best-effort: a failed cache
write never fails the request.
"""

import asyncio
from typing import Any, Dict, Optional

import requests
from bs4 import BeautifulSoup

from src.store.document_store import StoreError
from src.store.summary_cache import SummaryCache
from src.summarizers.llm_client import LLMClient
from src.utils.constants import ContentConstants, HTTPConstants
from src.utils.llm_prompts import LLMPrompts
from src.utils.logger import logger
from src.utils.models import AISummary, SummaryCacheEntry


def extract_main_content(html: str) -> str:
    """Main readable text of a page: <article>, else <main>, else the whole body."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(ContentConstants.STRIPPED_TAGS):
        tag.decompose()

    root = soup.find("article") or soup.find("main") or soup
    text = root.get_text(" ")
    text = ContentConstants.EXCESSIVE_WHITESPACE_PATTERN.sub(" ", text).strip()
    return text[: ContentConstants.MAX_ARTICLE_TEXT_LENGTH]


class ArticleSummarizer:
    """Generates and caches per-article AI summaries"""

    def __init__(
        self,
        cache: SummaryCache,
        llm: LLMClient,
        fetch_timeout: int = HTTPConstants.ARTICLE_FETCH_TIMEOUT,
    ):
        self.cache = cache
        self.llm = llm
        self.fetch_timeout = fetch_timeout

    async def summarize(
        self,
        url: str,
        title: Optional[str] = None,
        date: Optional[str] = None,
        article_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Summarize an article, using the cache when date and article_id are known.

        Returns:
            Dict with cached flag, article_text and ai_summary

        Raises:
            InferenceError: If the LLM call or its parsing fails
            StoreError: If the cache lookup fails
        """
        use_cache = bool(date) and article_id is not None

        if use_cache:
            cached = self.cache.get(date, article_id)
            if cached:
                logger.info(f"Cache hit: {SummaryCache.key(date, article_id)}")
                return {"cached": True, **cached.model_dump(mode="json")}

        article_text = await asyncio.to_thread(self.fetch_article_content, url)

        data = await self.llm.complete_json(
            LLMPrompts.get_article_summary_system_prompt(),
            LLMPrompts.get_article_summary_user_prompt(title, article_text),
        )
        entry = SummaryCacheEntry(
            article_text=article_text, ai_summary=AISummary.model_validate(data)
        )

        if use_cache:
            try:
                self.cache.put_if_absent(date, article_id, entry)
            except StoreError as e:
                logger.error(f"Cache save error for {date}_{article_id}: {e}")

        return {"cached": False, **entry.model_dump(mode="json")}

    def fetch_article_content(self, url: str) -> str:
        """Fetch a page and extract its text; any failure yields an empty string."""
        try:
            response = requests.get(
                url,
                headers={
                    "User-Agent": HTTPConstants.ARTICLE_USER_AGENT,
                    "Accept": HTTPConstants.ARTICLE_ACCEPT,
                    "Accept-Language": HTTPConstants.ARTICLE_ACCEPT_LANGUAGE,
                },
                timeout=self.fetch_timeout,
                allow_redirects=True,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning(f"Article fetch failed for {url}: {e}")
            return ""

        return extract_main_content(response.text)

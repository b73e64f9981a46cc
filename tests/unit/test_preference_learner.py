"""
Unit tests for the preference learning cycle.

The inference collaborator is an AsyncMock; both stores are in memory.
"""

from unittest.mock import AsyncMock

import pytest

from src.learning.preference_learner import PreferenceLearner
from src.store.click_log import ClickLog
from src.store.preference_store import PreferenceStore
from src.summarizers.llm_client import InferenceParseError
from src.utils.constants import LearningConstants

CLICKS_PATH = "data/user_clicks.json"
PROFILE_PATH = "user_preferences.json"


def seed_clicks(store, count, negative_every=0):
    clicks = []
    for i in range(count):
        signal_type = "negative" if negative_every and i % negative_every == 0 else "positive"
        clicks.append(
            {
                "type": signal_type,
                "article_id": i + 1,
                "title": f"AI chip news {i}",
                "category": "ai",
                "source": "Reuters",
                "timestamp": "2025-03-01T09:00:00Z",
            }
        )
    store.seed(CLICKS_PATH, {"clicks": clicks, "created_at": "2025-03-01T00:00:00Z"})


@pytest.fixture
def llm():
    client = AsyncMock()
    client.complete_json.return_value = {
        "boosted_keywords": ["AI", "semiconductors"],
        "suppressed_keywords": ["sports"],
        "preferred_sources": ["Reuters"],
        "category_distribution": {"ai": 0.7, "finance": 0.1, "politics": 0.1, "other": 0.1},
        "serendipity_ratio": 0.9,
        "learning_phase": 3,
    }
    return client


@pytest.fixture
def learner(memory_store, profile_memory_store, llm):
    return PreferenceLearner(
        ClickLog(memory_store, CLICKS_PATH),
        PreferenceStore(profile_memory_store, PROFILE_PATH),
        llm,
    )


class TestRunCycle:
    @pytest.mark.asyncio
    async def test_empty_log_skips_without_writing(self, learner, llm, profile_memory_store):
        outcome = await learner.run_cycle()

        assert outcome.status == "skipped"
        llm.complete_json.assert_not_called()
        assert profile_memory_store.commits == []

    @pytest.mark.asyncio
    async def test_phase_one_end_to_end(self, learner, memory_store, profile_memory_store):
        """Five positives produce a phase 1 profile with only keywords learned."""
        seed_clicks(memory_store, 5)

        outcome = await learner.run_cycle()

        assert outcome.status == "updated"
        assert outcome.clicks_analyzed == 5
        assert outcome.learning_phase == 1
        profile = profile_memory_store.body(PROFILE_PATH)
        assert profile["learning_phase"] == 1
        assert profile["boosted_keywords"] == ["AI", "semiconductors"]
        assert profile["suppressed_keywords"] == []
        assert profile["preferred_sources"] == []
        assert profile["category_distribution"] == LearningConstants.DEFAULT_CATEGORY_DISTRIBUTION
        assert profile["serendipity_ratio"] == 0.0
        assert profile["last_updated"]
        assert profile_memory_store.commits == [
            (PROFILE_PATH, "Update preferences via LLM analysis (5 clicks)")
        ]

    @pytest.mark.asyncio
    async def test_malformed_entries_count_toward_phase(
        self, learner, llm, memory_store, profile_memory_store
    ):
        """An old entry without an article number still counts as a signal."""
        seed_clicks(memory_store, 4)
        body = memory_store.body(CLICKS_PATH)
        body["clicks"].append({"title": "Legacy click", "clicked_at": "2025-01-01T00:00:00Z"})
        memory_store.seed(CLICKS_PATH, body)
        llm.complete_json.return_value = {"boosted_keywords": ["ai"]}

        outcome = await learner.run_cycle()

        assert outcome.status == "updated"
        assert outcome.clicks_analyzed == 5
        assert outcome.learning_phase == 1
        assert outcome.boosted_keywords == ["ai"]
        assert profile_memory_store.body(PROFILE_PATH)["boosted_keywords"] == ["ai"]
        _, user_prompt = llm.complete_json.call_args[0]
        assert "Legacy click" not in user_prompt

    @pytest.mark.asyncio
    async def test_phase_zero_keeps_defaults(self, learner, memory_store, profile_memory_store):
        seed_clicks(memory_store, 3)

        outcome = await learner.run_cycle()

        assert outcome.learning_phase == 0
        profile = profile_memory_store.body(PROFILE_PATH)
        assert profile["boosted_keywords"] == []
        assert profile["learning_phase"] == 0

    @pytest.mark.asyncio
    async def test_negative_signals_count_toward_phase(
        self, learner, memory_store, profile_memory_store
    ):
        seed_clicks(memory_store, 30, negative_every=3)

        outcome = await learner.run_cycle()

        assert outcome.learning_phase == 3
        profile = profile_memory_store.body(PROFILE_PATH)
        assert profile["serendipity_ratio"] == pytest.approx(LearningConstants.MAX_SERENDIPITY_RATIO)
        assert sum(profile["category_distribution"].values()) == pytest.approx(1.0, abs=1e-6)

    @pytest.mark.asyncio
    async def test_inference_failure_leaves_profile_unchanged(
        self, learner, llm, memory_store, profile_memory_store
    ):
        seed_clicks(memory_store, 20)
        profile_memory_store.seed(PROFILE_PATH, {"boosted_keywords": ["old"], "learning_phase": 2})
        llm.complete_json.side_effect = InferenceParseError("Could not parse AI response")

        outcome = await learner.run_cycle()

        assert outcome.status == "failed"
        assert "parse" in outcome.error
        assert profile_memory_store.commits == []
        assert profile_memory_store.body(PROFILE_PATH)["boosted_keywords"] == ["old"]

    @pytest.mark.asyncio
    async def test_unrelated_profile_keys_preserved(
        self, learner, memory_store, profile_memory_store
    ):
        seed_clicks(memory_store, 15)
        profile_memory_store.seed(
            PROFILE_PATH,
            {"boosted_keywords": [], "notification_hour": 7, "sources": {"rss": ["a"]}},
        )

        await learner.run_cycle()

        profile = profile_memory_store.body(PROFILE_PATH)
        assert profile["notification_hour"] == 7
        assert profile["sources"] == {"rss": ["a"]}
        assert profile["preferred_sources"] == ["Reuters"]

    @pytest.mark.asyncio
    async def test_prompt_includes_history_and_current_config(
        self, learner, llm, memory_store, profile_memory_store
    ):
        seed_clicks(memory_store, 6)
        profile_memory_store.seed(PROFILE_PATH, {"boosted_keywords": ["previous"]})

        await learner.run_cycle()

        system_prompt, user_prompt = llm.complete_json.call_args[0]
        assert system_prompt
        assert "AI chip news 0" in user_prompt
        assert "previous" in user_prompt

    @pytest.mark.asyncio
    async def test_phase_recomputed_not_incremented(
        self, learner, memory_store, profile_memory_store
    ):
        seed_clicks(memory_store, 6)
        profile_memory_store.seed(PROFILE_PATH, {"learning_phase": 3})

        outcome = await learner.run_cycle()

        assert outcome.learning_phase == 1
        assert profile_memory_store.body(PROFILE_PATH)["learning_phase"] == 1

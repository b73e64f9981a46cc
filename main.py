"""
Main entry point for the Briefly Tracker preference learning cycle
"""

import argparse
import asyncio

from src.learning.preference_learner import PreferenceLearner
from src.store.click_log import ClickLog
from src.store.document_store import StoreError
from src.store.github_store import GitHubContentsStore
from src.store.preference_store import PreferenceStore
from src.summarizers.llm_client import LLMClient
from src.utils.config import Settings, settings
from src.utils.logger import logger, setup_logging
from src.utils.models import LearningOutcome


def build_learner(config: Settings) -> PreferenceLearner:
    """Wire the learner against the tracker and profile repositories."""
    tracker_store = GitHubContentsStore.from_settings(config)
    profile_store = GitHubContentsStore.from_settings(config, repo=config.profile_repo)
    return PreferenceLearner(
        ClickLog(tracker_store, config.clicks_path),
        PreferenceStore(profile_store, config.profile_path),
        LLMClient(config),
    )


async def run_cycle(config: Settings = settings) -> LearningOutcome:
    """Run one learning cycle"""
    learner = build_learner(config)
    try:
        return await learner.run_cycle()
    finally:
        learner.click_log.store.close()
        learner.preferences.store.close()


def main(schedule_mode: bool = False) -> int:
    """Main entry point"""
    setup_logging(settings.log_level, settings.log_file)

    if schedule_mode:
        from src.utils.scheduler import LearningScheduler

        scheduler = LearningScheduler(settings, run_cycle)
        logger.info("Starting in scheduler mode")
        scheduler.run_once_then_schedule()
        return 0

    try:
        outcome = asyncio.run(run_cycle())
    except StoreError as e:
        logger.error(f"Learning cycle failed: {e}")
        outcome = LearningOutcome(status="failed", error=str(e))

    print("\nBriefly Tracker learning cycle:")
    print(f"   Status: {outcome.status}")
    print(f"   Signals analyzed: {outcome.clicks_analyzed}")
    if outcome.learning_phase is not None:
        print(f"   Learning phase: {outcome.learning_phase}")
    if outcome.boosted_keywords:
        print(f"   Boosted keywords: {', '.join(outcome.boosted_keywords)}")
    if outcome.error:
        print(f"   Error: {outcome.error}")

    # A failed cycle leaves the profile untouched; the next run retries
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Briefly Tracker - learn reading preferences from click signals"
    )
    parser.add_argument(
        "--schedule",
        action="store_true",
        help="Run once, then daily at SCHEDULER_TIME (from .env)",
    )

    args = parser.parse_args()

    raise SystemExit(main(schedule_mode=args.schedule))

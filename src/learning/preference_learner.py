"""
Preference learning cycle.

One cycle reads the whole click log, asks the inference collaborator for an
analysis of the full history, gates the answer by learning phase and commits
the new profile with a compare-and-swap write. The phase is recomputed from
the signal count every cycle; the stored phase is never incremented.
"""

from src.learning.phases import LearnedPreferences, phase_for_count
from src.store.click_log import ClickLog
from src.store.preference_store import PreferenceStore
from src.summarizers.llm_client import InferenceError, LLMClient
from src.utils.llm_prompts import LLMPrompts
from src.utils.logger import logger
from src.utils.models import LearningOutcome

LEARNED_FIELDS = (
    "boosted_keywords",
    "suppressed_keywords",
    "preferred_sources",
    "category_distribution",
    "serendipity_ratio",
)


class PreferenceLearner:
    """Derives the preference profile from the accumulated signal log"""

    def __init__(self, click_log: ClickLog, preferences: PreferenceStore, llm: LLMClient):
        self.click_log = click_log
        self.preferences = preferences
        self.llm = llm

    async def run_cycle(self) -> LearningOutcome:
        """
        Run one learning cycle.

        Returns:
            LearningOutcome with status "skipped" (empty log, nothing written),
            "failed" (inference error, profile untouched) or "updated"

        Raises:
            StoreError: Store failures propagate to the caller
        """
        history = self.click_log.read_history()
        if not history.total:
            logger.info("No clicks to analyze")
            return LearningOutcome(status="skipped")

        # Malformed entries still count toward the phase
        signal_count = history.total
        signals = history.signals
        phase = phase_for_count(signal_count)

        current = self.preferences.read()
        profile = self.preferences.to_profile(current)
        current_config = profile.model_dump(include=set(LEARNED_FIELDS))

        logger.info(f"Analyzing {signal_count} signals (phase {phase})")
        try:
            analysis = await self.llm.complete_json(
                LLMPrompts.get_preference_analysis_system_prompt(),
                LLMPrompts.get_preference_analysis_user_prompt(signals, current_config),
            )
        except InferenceError as e:
            logger.error(f"Preference analysis failed, profile left unchanged: {e}")
            return LearningOutcome(
                status="failed",
                clicks_analyzed=signal_count,
                learning_phase=profile.learning_phase,
                error=str(e),
            )

        learned = LearnedPreferences.from_inference(analysis, phase)
        document = self.preferences.save_learned(learned, signal_count, current=current)

        logger.info(
            f"Preferences updated: phase {phase}, {len(learned.boosted_keywords)} boosted keywords"
        )
        return LearningOutcome(
            status="updated",
            clicks_analyzed=signal_count,
            learning_phase=learned.learning_phase,
            boosted_keywords=learned.boosted_keywords,
            version=document.version,
        )

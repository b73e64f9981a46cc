"""
Learning phases and validated coercion of inference output.

The phase is a pure function of the cumulative signal count. It decides which
learned fields are trusted:

- Phase 0 (n < 5): nothing is learned, defaults pass through
- Phase 1 (5 <= n < 15): boosted_keywords only
- Phase 2 (15 <= n < 30): all keyword, source and category fields
- Phase 3 (n >= 30): phase 2 plus a serendipity ratio in [0.1, 0.2]
"""

import math
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from src.utils.constants import LearningConstants


def phase_for_count(signal_count: int) -> int:
    """Learning phase for a cumulative signal count (positive and negative)."""
    if signal_count < LearningConstants.PHASE_1_MIN_SIGNALS:
        return 0
    if signal_count < LearningConstants.PHASE_2_MIN_SIGNALS:
        return 1
    if signal_count < LearningConstants.PHASE_3_MIN_SIGNALS:
        return 2
    return 3


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def coerce_string_list(value: Any, limit: int) -> List[str]:
    """Keep unique non-empty strings in order, capped at limit."""
    if not isinstance(value, list):
        return []

    result = []
    seen = set()
    for item in value:
        if not isinstance(item, str):
            continue
        item = item.strip()
        if not item or item.lower() in seen:
            continue
        seen.add(item.lower())
        result.append(item)
        if len(result) >= limit:
            break
    return result


def normalize_distribution(value: Any) -> Dict[str, float]:
    """
    Scale non-negative numeric weights so they sum to 1.0.

    Non-object input, non-numeric or negative weights are dropped; if nothing
    usable remains the default distribution is returned.
    """
    if not isinstance(value, dict):
        return dict(LearningConstants.DEFAULT_CATEGORY_DISTRIBUTION)

    weights = {
        str(category): float(weight)
        for category, weight in value.items()
        if _is_number(weight) and weight > 0
    }
    total = sum(weights.values())
    if total <= 0:
        return dict(LearningConstants.DEFAULT_CATEGORY_DISTRIBUTION)

    normalized = {category: weight / total for category, weight in weights.items()}

    # Fold floating point drift into the largest bucket
    drift = 1.0 - sum(normalized.values())
    if drift:
        largest = max(normalized, key=normalized.get)
        normalized[largest] += drift
    return normalized


def clamp_serendipity(value: Any) -> float:
    low = LearningConstants.MIN_SERENDIPITY_RATIO
    high = LearningConstants.MAX_SERENDIPITY_RATIO
    if not _is_number(value):
        return low
    return min(high, max(low, float(value)))


class LearnedPreferences(BaseModel):
    """Learned profile fields after phase gating; never trusts the raw shape."""

    boosted_keywords: List[str] = Field(default_factory=list)
    suppressed_keywords: List[str] = Field(default_factory=list)
    preferred_sources: List[str] = Field(default_factory=list)
    category_distribution: Dict[str, float] = Field(
        default_factory=lambda: dict(LearningConstants.DEFAULT_CATEGORY_DISTRIBUTION)
    )
    serendipity_ratio: float = 0.0
    learning_phase: int = 0

    @classmethod
    def from_inference(cls, raw: Dict[str, Any], phase: int) -> "LearnedPreferences":
        """
        Build learned preferences from an inference response.

        Args:
            raw: Parsed JSON object from the inference collaborator
            phase: Phase computed from the signal count (the response's own
                learning_phase is ignored)

        Returns:
            LearnedPreferences with every field valid for the phase
        """
        if not isinstance(raw, dict):
            raw = {}

        learned = cls(learning_phase=phase)
        if phase >= 1:
            learned.boosted_keywords = coerce_string_list(
                raw.get("boosted_keywords"), LearningConstants.MAX_BOOSTED_KEYWORDS
            )
        if phase >= 2:
            learned.suppressed_keywords = coerce_string_list(
                raw.get("suppressed_keywords"), LearningConstants.MAX_SUPPRESSED_KEYWORDS
            )
            learned.preferred_sources = coerce_string_list(
                raw.get("preferred_sources"), LearningConstants.MAX_PREFERRED_SOURCES
            )
            learned.category_distribution = normalize_distribution(
                raw.get("category_distribution")
            )
        if phase >= LearningConstants.MAX_PHASE:
            learned.serendipity_ratio = clamp_serendipity(raw.get("serendipity_ratio"))
        return learned

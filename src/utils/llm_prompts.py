"""
LLM prompt construction for Briefly Tracker.

Static instructions and the JSON schema go in the system prompt; only the
per-call data (click history, article text) goes in the user prompt, so the
system prefix stays identical across calls and can be cached by the server.
"""

import json
from typing import Any, Dict, List, Optional

from src.utils.models import Signal


class LLMPrompts:
    """Centralized prompts for preference analysis and article summaries."""

    @staticmethod
    def get_preference_analysis_system_prompt() -> str:
        """
        Static system prompt for preference analysis.

        Returns:
            str: System prompt describing the profile schema and phase rules
        """
        return """You are a news personalization expert. You analyze a reader's click history and produce a preference profile used to generate tomorrow's news candidates.

Signals:
- "positive": the reader opened the article
- "negative": the reader explicitly marked the article as "not interested"

Guidelines:
- Extract interest patterns from the titles, categories and sources of positive signals
- Negative signals indicate low interest in that topic or source
- Use the current settings as a starting point and adjust gradually; avoid abrupt changes

ALWAYS respond with this exact JSON format:
{
    "boosted_keywords": ["keywords the reader cares about (5-15)"],
    "suppressed_keywords": ["keywords the reader does not care about (0-10)"],
    "preferred_sources": ["trusted news sources (0-5)"],
    "category_distribution": {"ai": 0.0, "finance": 0.0, "politics": 0.0, "other": 0.0},
    "serendipity_ratio": 0.0,
    "learning_phase": 0
}

learning_phase rules:
- 0: fewer than 5 clicks (not enough data, keep defaults)
- 1: 5-15 clicks (initial learning, boosted_keywords only)
- 2: 15-30 clicks (all fields)
- 3: 30 or more clicks (mature, serendipity enabled)

CRITICAL REQUIREMENTS:
- At learning_phase 0, boosted_keywords and suppressed_keywords must be empty arrays
- category_distribution values must sum to 1.0
- serendipity_ratio is 0.1-0.2 only at learning_phase 3, otherwise 0.0
- Return ONLY the JSON object, no markdown code blocks, no explanations"""

    @staticmethod
    def get_preference_analysis_user_prompt(
        signals: List[Signal], current_config: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Dynamic user prompt with the click history and current settings.

        Args:
            signals: Full signal history
            current_config: Learned fields of the current profile
        """
        click_summary = [
            {
                "type": signal.type.value,
                "title": signal.title,
                "category": signal.category,
                "source": signal.source,
                "date": (signal.timestamp or "")[:10],
            }
            for signal in signals
        ]

        return f"""## Click history ({len(signals)} signals)
{json.dumps(click_summary, ensure_ascii=False, indent=2)}

## Current preference settings
{json.dumps(current_config or {}, ensure_ascii=False, indent=2)}"""

    @staticmethod
    def get_article_summary_system_prompt() -> str:
        """Static system prompt for article summarization."""
        return """You are a news summarization expert. Summarize the article you receive in Japanese.

ALWAYS respond with this exact JSON format:
{
    "headline": "One-line headline (30 characters or fewer)",
    "key_points": ["Point 1", "Point 2", "Point 3"],
    "detailed_summary": "A 200-300 character summary covering background, key facts and impact",
    "why_it_matters": "One or two sentences on why this news matters"
}

CRITICAL REQUIREMENTS:
- Return ONLY the JSON object, no markdown code blocks, no explanations
- If the article body is missing, infer the summary from the title"""

    @staticmethod
    def get_article_summary_user_prompt(title: Optional[str], article_text: str) -> str:
        """Dynamic user prompt with the article title and extracted text."""
        body = article_text or "(The article body could not be retrieved. Summarize from the title.)"
        return f"""[Title]
{title or ""}

[Body]
{body}"""

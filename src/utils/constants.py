"""
Constants and configuration values for Briefly Tracker
"""
import re


# Learning phase thresholds (cumulative signal count)
class LearningConstants:
    PHASE_1_MIN_SIGNALS = 5
    PHASE_2_MIN_SIGNALS = 15
    PHASE_3_MIN_SIGNALS = 30
    MAX_PHASE = 3

    # Field caps for learned preferences
    MAX_BOOSTED_KEYWORDS = 15
    MAX_SUPPRESSED_KEYWORDS = 10
    MAX_PREFERRED_SOURCES = 5

    # Serendipity window, only active at phase 3
    MIN_SERENDIPITY_RATIO = 0.1
    MAX_SERENDIPITY_RATIO = 0.2

    DISTRIBUTION_TOLERANCE = 1e-6

    DEFAULT_CATEGORY_DISTRIBUTION = {
        "ai": 0.25,
        "finance": 0.25,
        "politics": 0.25,
        "other": 0.25,
    }


# Document store constants
class StoreConstants:
    GITHUB_API_URL = "https://api.github.com"
    GITHUB_ACCEPT = "application/vnd.github.v3+json"

    # Contents API returns empty content for files over 1MB
    LARGE_FILE_ENCODING = "none"

    # PUT status for a sha that no longer matches
    CONFLICT_STATUS = 409
    # 422 is a conflict only when the message is about the sha
    VALIDATION_STATUS = 422
    SHA_FIELD = "sha"

    # At most one automatic retry of a conflicting read-modify-write
    MAX_WRITE_RETRIES = 1

    JSON_INDENT = 2


# HTTP Request Constants
class HTTPConstants:
    GITHUB_TIMEOUT = 30
    ARTICLE_FETCH_TIMEOUT = 10
    SIGNAL_FLUSH_TIMEOUT = 2.0
    BEACON_TIMEOUT = 5
    MAX_RETRIES = 3
    RETRY_BACKOFF_FACTOR = 1.0

    USER_AGENT = "BrieflyTracker/1.0"
    ARTICLE_USER_AGENT = "Mozilla/5.0 (compatible; BrieflyAI/1.0)"
    ARTICLE_ACCEPT = "text/html,application/xhtml+xml"
    ARTICLE_ACCEPT_LANGUAGE = "ja,en;q=0.9"


# Content extraction constants
class ContentConstants:
    MAX_ARTICLE_TEXT_LENGTH = 5000
    STRIPPED_TAGS = ["script", "style", "nav", "header", "footer", "aside"]
    EXCESSIVE_WHITESPACE_PATTERN = re.compile(r"\s+")

    # First "{" through last "}" of an LLM response
    JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


# Browser-local storage keys used by the signal collector
class CollectorConstants:
    SENT_POSITIVE_KEY = "trackedSignals"
    DISLIKED_KEY = "dislikedArticles"
    LEGACY_SENT_KEY = "trackedClicks"

    SIGNALS_ENDPOINT = "/api/track-signals"
    DEFAULT_API_BASE = "https://ai-news-bot-web-tracker.vercel.app"


# Validation patterns
class ValidationConstants:
    DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

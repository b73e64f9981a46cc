"""
Base models and data structures
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from src.utils.constants import LearningConstants


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SignalType(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class Document(BaseModel):
    """A JSON body stored at a repository path plus its version token (sha).

    ``version`` is None when the path was not observed to exist.
    """
    path: str
    body: Any
    version: Optional[str] = None


class Signal(BaseModel):
    """One user interest event.

    Older log entries use ``article_number`` / ``clicked_at``; both are
    accepted on input and written back under the current names.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: SignalType = SignalType.POSITIVE
    article_id: int = Field(validation_alias=AliasChoices("article_id", "article_number"))
    title: Optional[str] = None
    url: Optional[str] = None
    category: Optional[str] = None
    source: Optional[str] = None
    timestamp: str = Field(
        default_factory=utc_now_iso,
        validation_alias=AliasChoices("timestamp", "clicked_at"),
    )

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v):
        return v or SignalType.POSITIVE

    @field_validator("timestamp", mode="before")
    @classmethod
    def normalize_timestamp(cls, v):
        if v is None or v == "":
            return utc_now_iso()
        if isinstance(v, datetime):
            return v.isoformat()
        return v

    def to_log_entry(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ArticleRef(BaseModel):
    """Article as rendered in the reader; input to the signal collector."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    number: int = Field(validation_alias=AliasChoices("number", "article_id", "article_number"))
    title: Optional[str] = None
    url: Optional[str] = None
    category: Optional[str] = None
    source: Optional[str] = None


class AISummary(BaseModel):
    """Structured AI summary of one article"""
    headline: str = ""
    key_points: List[str] = Field(default_factory=list)
    detailed_summary: str = ""
    why_it_matters: str = ""

    @field_validator("headline", "detailed_summary", "why_it_matters", mode="before")
    @classmethod
    def coerce_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("key_points", mode="before")
    @classmethod
    def coerce_key_points(cls, v):
        if not isinstance(v, list):
            return []
        return [str(point) for point in v if point is not None]


class SummaryCacheEntry(BaseModel):
    """Cached article text and summary, immutable once written"""
    article_text: str = ""
    ai_summary: AISummary


class PreferenceProfile(BaseModel):
    """Personalization configuration consumed by candidate generation.

    Keys other tools keep in the same document are preserved (extra="allow").
    """
    model_config = ConfigDict(extra="allow")

    boosted_keywords: List[str] = Field(default_factory=list)
    suppressed_keywords: List[str] = Field(default_factory=list)
    preferred_sources: List[str] = Field(default_factory=list)
    category_distribution: Dict[str, float] = Field(
        default_factory=lambda: dict(LearningConstants.DEFAULT_CATEGORY_DISTRIBUTION)
    )
    serendipity_ratio: float = 0.0
    learning_phase: int = 0
    last_updated: Optional[str] = None


class LearningOutcome(BaseModel):
    """Result of one learning cycle"""
    status: str  # updated, skipped, failed
    clicks_analyzed: int = 0
    learning_phase: Optional[int] = None
    boosted_keywords: List[str] = Field(default_factory=list)
    version: Optional[str] = None
    error: Optional[str] = None

"""
Pydantic schemas for the Briefly Tracker API.

Request/response models for FastAPI endpoints with validation.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from src.utils.constants import ValidationConstants
from src.utils.models import AISummary, Signal


# Signal Schemas
class TrackSignalsRequest(BaseModel):
    """Request schema for a batch of signals from one client flush."""

    signals: List[Signal] = Field(..., min_length=1)


class TrackSignalsResponse(BaseModel):
    """Response schema for signal ingestion."""

    success: bool = True
    message: str
    total_clicks: int


# Summary Schemas
class SummarizeRequest(BaseModel):
    """Request schema for an article summary."""

    url: str = Field(..., min_length=1)
    title: Optional[str] = None
    date: Optional[str] = None
    article_id: Optional[int] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure url is not just whitespace."""
        if not v.strip():
            raise ValueError("URL is required")
        return v.strip()

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: Optional[str]) -> Optional[str]:
        """Ensure date is YYYY-MM-DD when given."""
        if v and not ValidationConstants.DATE_PATTERN.match(v):
            raise ValueError("Date must be in YYYY-MM-DD format")
        return v or None


class SummarizeResponse(BaseModel):
    """Response schema for an article summary."""

    success: bool = True
    cached: bool
    article_text: str
    ai_summary: AISummary


# Learning Schemas
class AnalyzePreferencesResponse(BaseModel):
    """Response schema for the scheduled learning cycle."""

    success: bool
    status: str
    message: Optional[str] = None
    clicks_analyzed: int = 0
    learning_phase: Optional[int] = None
    boosted_keywords: List[str] = Field(default_factory=list)


# Error Response Schema
class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str
    message: str
    details: Optional[List[Dict[str, Any]]] = None

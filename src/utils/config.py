"""
Configuration for Briefly Tracker.

Environment-based settings using Pydantic BaseSettings.
"""
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

from src.utils.constants import HTTPConstants

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # GitHub document store
    github_token: Optional[str] = None
    github_owner: str = "octmarker"
    github_repo: str = "ai-news-bot-web-tracker"  # click log + summary cache
    profile_repo: str = "ai-news-bot"  # preference profile
    github_timeout: int = HTTPConstants.GITHUB_TIMEOUT

    # Document paths
    clicks_path: str = "data/user_clicks.json"
    profile_path: str = "user_preferences.json"
    summaries_dir: str = "data/summaries"

    # Cron entry point
    cron_secret: Optional[str] = None

    # LLM (OpenAI-compatible endpoint via open-agent-sdk)
    llm_api_url: str = "http://localhost:8000/v1"
    llm_model: str = "llama-3.1-8b-instruct"
    llm_api_key: str = "not-needed"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 4000
    llm_timeout: int = 120

    # Summaries
    article_fetch_timeout: int = HTTPConstants.ARTICLE_FETCH_TIMEOUT

    # Scheduler (daily learning cycle)
    scheduler_enabled: bool = True
    scheduler_time: str = "23:30"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = "logs/briefly-tracker.log"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()

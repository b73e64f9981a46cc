"""FastAPI application for the Briefly Tracker API.

Signal ingestion, cached article summaries and the scheduled preference
learning entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware

from src.learning.preference_learner import PreferenceLearner
from src.store.click_log import ClickLog, describe_batch
from src.summarizers.article_summarizer import ArticleSummarizer
from src.utils.config import settings
from src.utils.logger import setup_logging
from src.utils.models import Signal
from src.web.dependencies import (
    get_click_log,
    get_learner,
    get_summarizer,
    require_cron_secret,
)
from src.web.error_handlers import error_response, register_error_handlers
from src.web.schemas import (
    AnalyzePreferencesResponse,
    SummarizeRequest,
    SummarizeResponse,
    TrackSignalsRequest,
    TrackSignalsResponse,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup/shutdown)."""
    # Console only; serverless deployments have no persistent disk
    setup_logging(settings.log_level, log_file=None)
    logger.info("Starting Briefly Tracker API")
    yield
    logger.info("Shutting down Briefly Tracker API")


app = FastAPI(title="Briefly Tracker", lifespan=lifespan)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.post("/api/track-signals", response_model=TrackSignalsResponse)
def track_signals(
    payload: TrackSignalsRequest,
    click_log: ClickLog = Depends(get_click_log),
):
    """Append a batch of positive/negative signals in a single commit."""
    total = click_log.append_batch(payload.signals)
    return TrackSignalsResponse(
        message=describe_batch(payload.signals),
        total_clicks=total,
    )


@app.post("/api/track-click", response_model=TrackSignalsResponse)
def track_click(
    signal: Signal,
    click_log: ClickLog = Depends(get_click_log),
):
    """Append a single click (pre-batching clients)."""
    total = click_log.append_click(signal)
    return TrackSignalsResponse(
        message="Click tracked successfully",
        total_clicks=total,
    )


@app.post("/api/summarize", response_model=SummarizeResponse)
async def summarize(
    payload: SummarizeRequest,
    summarizer: ArticleSummarizer = Depends(get_summarizer),
):
    """Return the AI summary of an article, from cache when available."""
    result = await summarizer.summarize(
        payload.url,
        title=payload.title,
        date=payload.date,
        article_id=payload.article_id,
    )
    return SummarizeResponse(**result)


@app.get(
    "/api/analyze-preferences",
    response_model=AnalyzePreferencesResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def analyze_preferences(learner: PreferenceLearner = Depends(get_learner)):
    """Scheduled entry point: run one preference learning cycle."""
    outcome = await learner.run_cycle()

    if outcome.status == "failed":
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to analyze preferences",
            "Preference analysis failed; the profile was left unchanged.",
        )

    message = "No clicks to analyze" if outcome.status == "skipped" else "Preferences updated"
    return AnalyzePreferencesResponse(
        success=True,
        status=outcome.status,
        message=message,
        clicks_analyzed=outcome.clicks_analyzed,
        learning_phase=outcome.learning_phase,
        boosted_keywords=outcome.boosted_keywords,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)

import os
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from api.dependencies import get_calendar
from integration.calendar_integration import Calendar

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(calendar: Optional[Calendar] = Depends(get_calendar)) -> dict:
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "llm_provider": os.getenv("LLM_PROVIDER", "gemini"),
        "calendar_connected": calendar is not None,
    }


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus scrape endpoint.
    """
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.config import settings
from src.dependencies import get_review_cache
from src.services.cache import ReviewCache

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    environment: str
    scraper_profile: str
    cache_entries: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@router.get("/health", response_model=HealthResponse)
async def get_health(cache: ReviewCache = Depends(get_review_cache)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        environment=settings.app_env,
        scraper_profile=settings.scraper_profile,
        cache_entries=len(cache),
    )

from fastapi import Depends, Request

from src.services.cache import ReviewCache
from src.services.review_service import ReviewScrapeService


def get_review_cache(request: Request) -> ReviewCache:
    return request.app.state.review_cache


def get_review_service(cache: ReviewCache = Depends(get_review_cache)) -> ReviewScrapeService:
    return ReviewScrapeService(cache)

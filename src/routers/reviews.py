from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from src.dependencies import get_review_service
from src.scraper.errors import ScrapeError
from src.services.review_service import ReviewScrapeService

router = APIRouter(prefix="/reviews")

REQUEST_ID_HEADER = "X-Request-ID"


@router.get("", tags=["Reviews"])
async def scrape_reviews(
    search_term: str | None = Query(default=None, alias="searchTerm"),
    skip_cache: bool = Query(default=False, alias="skipCache"),
    service: ReviewScrapeService = Depends(get_review_service),
) -> JSONResponse:
    request_id = str(uuid4())
    try:
        result = await service.scrape_reviews(search_term, skip_cache=skip_cache, request_id=request_id)
    except ScrapeError as exc:
        raise HTTPException(
            status_code=exc.kind.status_code,
            detail=exc.to_payload(),
            headers={REQUEST_ID_HEADER: request_id},
        ) from exc

    return JSONResponse(content=result.model_dump(mode="json"), headers={REQUEST_ID_HEADER: request_id})

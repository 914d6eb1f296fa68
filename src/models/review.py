from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

ANONYMOUS_AUTHOR = "Anonymous"
NO_RATING = "No rating"
NO_REVIEW_TEXT = "No review text"


class BusinessSummary(BaseModel):
    name: str | None = None
    # Kept as the source renders it ("4,5", "4.5", localized labels).
    average_rating: str | None = None
    total_reviews: int | None = Field(default=None, ge=0)

    model_config = ConfigDict(frozen=True)


class ReviewRecord(BaseModel):
    author_name: str = ANONYMOUS_AUTHOR
    rating: str = NO_RATING
    text: str = NO_REVIEW_TEXT
    review_id: str | None = None
    date_posted: str | None = None

    model_config = ConfigDict(frozen=True)


class ScrapeResult(BaseModel):
    business: BusinessSummary = Field(default_factory=BusinessSummary)
    reviews: tuple[ReviewRecord, ...] = ()
    scraped_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

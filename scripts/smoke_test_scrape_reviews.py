import asyncio
import argparse
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.config import settings
from src.scraper.errors import ScrapeError
from src.services.cache import ReviewCache
from src.services.review_service import ReviewScrapeService


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smoke test for Google Maps review scraping against a live browser.")
    parser.add_argument("query", nargs="*", help="Business search query or direct Google Maps URL.")
    parser.add_argument(
        "--max-reviews",
        type=int,
        default=settings.scraper_max_reviews,
        help=f"Review cap for this run (default: {settings.scraper_max_reviews}).",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=settings.scraper_retry_attempts,
        help=f"Attempts before giving up (default: {settings.scraper_retry_attempts}).",
    )
    parser.add_argument(
        "--twice",
        action="store_true",
        help="Run the same query a second time to check it is served from cache.",
    )
    return parser.parse_args()


async def main() -> None:
    args = _parse_args()
    query = " ".join(args.query).strip() or "Example Cafe"

    service = ReviewScrapeService(
        ReviewCache(ttl_seconds=settings.cache_ttl_seconds),
        max_reviews=max(1, args.max_reviews),
        retry_attempts=max(1, args.retries),
    )

    try:
        result = await service.scrape_reviews(query)
    except ScrapeError as exc:
        print(f"FAILED - {exc.kind.value}: {exc.detail} (request_id={exc.request_id})")
        raise SystemExit(1) from exc

    print(f"OK - scrape completed for: {query}")
    print(f"Business: {result.business.model_dump()}")
    print(f"Reviews extracted: {len(result.reviews)} (cap={args.max_reviews})")
    if result.reviews:
        print(f"First review sample: {json.dumps(result.reviews[0].model_dump(), ensure_ascii=False)}")

    if args.twice:
        again = await service.scrape_reviews(query)
        print(f"Second call served from cache: {again is result}")


if __name__ == "__main__":
    asyncio.run(main())

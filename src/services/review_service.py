from __future__ import annotations

import asyncio
import logging
import re
from functools import partial
from urllib.parse import quote, unquote, urlparse
from uuid import uuid4

from src.config import settings
from src.models.review import BusinessSummary, ScrapeResult
from src.scraper.behavior import HumanBehavior
from src.scraper.errors import ScrapeError, ScrapeErrorKind
from src.scraper.extraction import ExtractionPipeline
from src.scraper.fingerprint import FingerprintSelector
from src.scraper.navigation import NavigationController
from src.scraper.pagination import ScrollPaginator
from src.scraper.retry import RetryOrchestrator
from src.scraper.session import BrowserSession, SessionManager
from src.services.cache import ReviewCache, normalize_cache_key

LOGGER = logging.getLogger(__name__)

_MAX_QUERY_LENGTH = 2048


class ReviewScrapeService:
    """Answers one review query: cache lookup, then a retried scrape on miss.

    Every collaborator can be injected; anything omitted is built from
    ``settings``. The cache is always injected because it outlives requests.
    """

    def __init__(
        self,
        cache: ReviewCache,
        *,
        fingerprints: FingerprintSelector | None = None,
        sessions: SessionManager | None = None,
        navigator: NavigationController | None = None,
        extractor: ExtractionPipeline | None = None,
        paginator: ScrollPaginator | None = None,
        orchestrator: RetryOrchestrator | None = None,
        max_reviews: int | None = None,
        retry_attempts: int | None = None,
        request_timeout_s: float | None = None,
        maps_search_url: str | None = None,
    ) -> None:
        behavior = HumanBehavior(
            min_click_delay_ms=settings.scraper_min_click_delay_ms,
            max_click_delay_ms=settings.scraper_max_click_delay_ms,
            min_scroll_delay_ms=settings.scraper_min_scroll_delay_ms,
            max_scroll_delay_ms=settings.scraper_max_scroll_delay_ms,
            min_loading_delay_ms=settings.scraper_min_loading_delay_ms,
            max_loading_delay_ms=settings.scraper_max_loading_delay_ms,
        )
        self.cache = cache
        self.fingerprints = fingerprints or FingerprintSelector(jitter_px=settings.scraper_viewport_jitter_px)
        self.sessions = sessions or SessionManager(
            profile=settings.scraper_profile,
            headless=settings.scraper_headless,
            executable_path=settings.scraper_executable_path,
            serverless_executable_path=settings.scraper_serverless_executable_path,
            extra_chromium_args=settings.scraper_extra_chromium_args,
            default_timeout_ms=settings.scraper_selector_timeout_ms,
        )
        self.navigator = navigator or NavigationController(
            behavior,
            navigation_timeout_ms=settings.scraper_navigation_timeout_ms,
            selector_timeout_ms=settings.scraper_selector_timeout_ms,
        )
        self.extractor = extractor or ExtractionPipeline()
        self.paginator = paginator or ScrollPaginator(
            self.extractor,
            behavior,
            max_attempts=settings.scraper_max_scroll_attempts,
            min_step_px=settings.scraper_min_scroll_step_px,
            max_step_px=settings.scraper_max_scroll_step_px,
            confirm_convergence=settings.scraper_confirm_convergence,
        )
        self.orchestrator = orchestrator or RetryOrchestrator(
            base_delay_ms=settings.scraper_retry_base_delay_ms,
            min_jitter=settings.scraper_retry_min_jitter,
            max_jitter=settings.scraper_retry_max_jitter,
        )
        self.max_reviews = settings.scraper_max_reviews if max_reviews is None else max_reviews
        self.retry_attempts = settings.scraper_retry_attempts if retry_attempts is None else retry_attempts
        self.request_timeout_s = settings.scraper_request_timeout_s if request_timeout_s is None else request_timeout_s
        self.maps_search_url = maps_search_url or settings.scraper_maps_search_url

    async def scrape_reviews(
        self,
        query: str | None,
        skip_cache: bool = False,
        request_id: str | None = None,
    ) -> ScrapeResult:
        request_id = request_id or str(uuid4())
        search_term = self._validate_query(query, request_id)
        cache_key = normalize_cache_key(search_term)
        LOGGER.info("request_id=%s query=%r skip_cache=%s", request_id, search_term, skip_cache)

        if not skip_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                LOGGER.info("request_id=%s cache hit key=%s", request_id, cache_key)
                return cached
            LOGGER.info("request_id=%s cache miss key=%s", request_id, cache_key)

        url = self.build_target_url(search_term)
        try:
            result = await asyncio.wait_for(
                self.orchestrator.run(
                    partial(self._scrape_attempt, url, request_id),
                    self.retry_attempts,
                    request_id=request_id,
                ),
                timeout=self.request_timeout_s,
            )
        except asyncio.TimeoutError as exc:
            LOGGER.error("request_id=%s request deadline of %.1fs elapsed", request_id, self.request_timeout_s)
            raise ScrapeError(
                ScrapeErrorKind.EXHAUSTED,
                f"Scrape did not finish within {self.request_timeout_s:.0f} seconds.",
                request_id=request_id,
            ) from exc
        except ScrapeError as exc:
            raise exc.with_request_id(request_id)

        self.cache.put(cache_key, result)
        LOGGER.info(
            "request_id=%s scrape completed business=%r reviews=%d",
            request_id,
            result.business.name,
            len(result.reviews),
        )
        return result

    def build_target_url(self, search_term: str) -> str:
        if search_term.lower().startswith(("http://", "https://")):
            return search_term
        # Same decoding as the cache key, so queries sharing a key share a target.
        return f"{self.maps_search_url}{quote(unquote(search_term), safe='')}"

    async def _scrape_attempt(self, url: str, request_id: str, attempt_index: int) -> ScrapeResult:
        fingerprint = self.fingerprints.choose()
        business = BusinessSummary()

        async def read_listing(session: BrowserSession) -> None:
            nonlocal business
            try:
                business = await self.extractor.extract_business(session)
            except ScrapeError as exc:
                if exc.kind is not ScrapeErrorKind.EXTRACTION_FAILURE:
                    raise
                # An unreadable header leaves the summary empty.
                LOGGER.warning(
                    "request_id=%s attempt=%d business summary unavailable: %s",
                    request_id,
                    attempt_index + 1,
                    exc.detail,
                )

        async with self.sessions.session(fingerprint, request_id=request_id, attempt=attempt_index + 1) as session:
            outcome = await self.navigator.navigate(session, url, on_listing_ready=read_listing)
            outcome.raise_for_state()
            reviews = await self.paginator.collect(session, self.max_reviews)

        return ScrapeResult(business=business, reviews=tuple(reviews))

    def _validate_query(self, query: str | None, request_id: str) -> str:
        cleaned = re.sub(r"\s+", " ", str(query or "")).strip()
        if not cleaned:
            raise ScrapeError(ScrapeErrorKind.INVALID_QUERY, "searchTerm is required", request_id=request_id)
        if len(cleaned) > _MAX_QUERY_LENGTH:
            raise ScrapeError(
                ScrapeErrorKind.INVALID_QUERY,
                f"searchTerm must be at most {_MAX_QUERY_LENGTH} characters",
                request_id=request_id,
            )
        if cleaned.lower().startswith(("http://", "https://")) and not urlparse(cleaned).netloc:
            raise ScrapeError(ScrapeErrorKind.INVALID_QUERY, "searchTerm URL has no host", request_id=request_id)
        return cleaned

"""In-memory stand-ins for the Playwright objects the scraper touches.

``FakeFeedPage`` renders a virtualized review feed: every smooth-scroll call
reveals ``per_scroll`` more cards until ``stop_after`` scrolls have happened,
after which the feed plateaus. Pages answer ``evaluate`` by recognizing the
scraper's own scripts, so extraction and scrolling run unmodified against them.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.scraper.behavior import HumanBehavior
from src.scraper.extraction import BUSINESS_SCRIPT, REVIEWS_SCRIPT, ExtractionPipeline
from src.scraper.fingerprint import FingerprintSelector
from src.scraper.navigation import NavigationController
from src.scraper.pagination import SMOOTH_SCROLL_SCRIPT, ScrollPaginator
from src.scraper.retry import RetryOrchestrator
from src.scraper.selectors import DEFAULT_SELECTORS, SelectorSet
from src.scraper.session import SessionManager
from src.services.cache import ReviewCache
from src.services.review_service import ReviewScrapeService


def make_review(index: int) -> dict[str, Any]:
    return {
        "review_id": f"r{index}",
        "author_name": f" Reviewer {index} ",
        "rating_label": f"{(index % 5) + 1} stars",
        "collapsed_text": f"Review {index} trunc…",
        "expanded_text": f"Review {index} full text",
        "date_posted": f"{index + 1} weeks ago",
    }


class FakeMouse:
    def __init__(self) -> None:
        self.moves: list[tuple[float, float]] = []
        self.downs = 0
        self.ups = 0

    async def move(self, x: float, y: float, steps: int = 1) -> None:
        self.moves.append((x, y))

    async def down(self) -> None:
        self.downs += 1

    async def up(self) -> None:
        self.ups += 1


class FakeLocator:
    def __init__(self, page: FakeFeedPage, selector: str, *, visible_only: bool = False) -> None:
        self._page = page
        self._selector = selector
        self._visible_only = visible_only

    @property
    def first(self) -> FakeLocator:
        return self

    def locator(self, selector: str) -> FakeLocator:
        assert selector == "visible=true"
        return FakeLocator(self._page, self._selector, visible_only=True)

    def _parts(self) -> list[str]:
        return [part.strip() for part in self._selector.split(",")]

    def _visible(self) -> bool:
        return any(self._page.is_present(part) for part in self._parts())

    def _hidden(self) -> bool:
        return any(part in self._page.hidden_selectors for part in self._parts())

    async def count(self) -> int:
        if self._visible() or (not self._visible_only and self._hidden()):
            return 1
        return 0

    async def wait_for(self, state: str = "visible", timeout: float | None = None) -> None:
        # Without the visibility filter a hidden match is treated as first in DOM order.
        if not self._visible() or (not self._visible_only and self._hidden()):
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self._selector}")

    async def bounding_box(self) -> dict[str, float] | None:
        if not self._visible():
            return None
        return {"x": 100.0, "y": 200.0, "width": 120.0, "height": 40.0}

    async def scroll_into_view_if_needed(self) -> None:
        return None

    async def click(self) -> None:
        self._page.clicked.append(self._selector)


class FakeFeedPage:
    def __init__(
        self,
        *,
        business: dict[str, Any] | None = None,
        initial_visible: int = 3,
        per_scroll: int = 0,
        stop_after: int | None = None,
        pool_size: int | None = None,
        review_factory: Callable[[int], dict[str, Any]] = make_review,
        present_roles: set[str] | None = None,
        hidden_selectors: set[str] | None = None,
        goto_error: Exception | None = None,
        goto_delay_s: float = 0.0,
        load_state_error: Exception | None = None,
        business_error: Exception | None = None,
        extraction_error: Exception | None = None,
        selectors: SelectorSet = DEFAULT_SELECTORS,
    ) -> None:
        self.business = business if business is not None else {
            "name": "  Example Cafe ",
            "average_rating": "4.6",
            "total_reviews": "(1,234)",
        }
        self.initial_visible = initial_visible
        self.per_scroll = per_scroll
        self.stop_after = stop_after
        self.pool_size = pool_size
        self.review_factory = review_factory
        self.present_roles = (
            present_roles if present_roles is not None else {"REVIEWS_BUTTON", "REVIEWS_CONTAINER"}
        )
        self.hidden_selectors = hidden_selectors or set()
        self.goto_error = goto_error
        self.goto_delay_s = goto_delay_s
        self.load_state_error = load_state_error
        self.business_error = business_error
        self.extraction_error = extraction_error
        self.selectors = selectors

        self.mouse = FakeMouse()
        self.viewport_size = {"width": 1366, "height": 768}
        self.visited: list[str] = []
        self.clicked: list[str] = []
        self.scrolls = 0
        self.review_reads = 0
        self.business_reads = 0
        self.evaluate_args: list[Any] = []

    def is_present(self, selector: str) -> bool:
        if selector in self.hidden_selectors:
            return False
        return any(selector in self.selectors.patterns(role) for role in self.present_roles)

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def visible_count(self) -> int:
        reveals = self.scrolls if self.stop_after is None else min(self.scrolls, self.stop_after)
        count = self.initial_visible + self.per_scroll * reveals
        if self.pool_size is not None:
            count = min(count, self.pool_size)
        return count

    async def goto(self, url: str, wait_until: str | None = None, timeout: float | None = None) -> None:
        self.visited.append(url)
        if self.goto_delay_s:
            await asyncio.sleep(self.goto_delay_s)
        if self.goto_error is not None:
            raise self.goto_error

    async def wait_for_load_state(self, state: str = "load", timeout: float | None = None) -> None:
        if self.load_state_error is not None:
            raise self.load_state_error

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluate_args.append(arg)
        if script == BUSINESS_SCRIPT:
            self.business_reads += 1
            if self.business_error is not None:
                raise self.business_error
            return dict(self.business)
        if script == REVIEWS_SCRIPT:
            self.review_reads += 1
            if self.extraction_error is not None:
                raise self.extraction_error
            return [self.review_factory(index) for index in range(self.visible_count())]
        if script == SMOOTH_SCROLL_SCRIPT:
            self.scrolls += 1
            at_bottom = self.stop_after is not None and self.scrolls >= self.stop_after
            return {"found": True, "scrolled": not at_bottom, "at_bottom": at_bottom}
        raise PlaywrightError("Unexpected script")


class Ledger:
    """Counts launches and teardowns across every fake browser."""

    def __init__(self) -> None:
        self.started = 0
        self.stopped = 0
        self.launched = 0
        self.browsers_closed = 0
        self.contexts_closed = 0
        self.launch_options: list[dict[str, Any]] = []
        self.context_options: list[dict[str, Any]] = []

    @property
    def open_browsers(self) -> int:
        return self.launched - self.browsers_closed


class FakeContext:
    def __init__(self, ledger: Ledger, page_factory: Callable[[], Any], page_error: Exception | None) -> None:
        self._ledger = ledger
        self._page_factory = page_factory
        self._page_error = page_error
        self.init_scripts: list[str] = []
        self.default_timeout: float | None = None

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    def set_default_timeout(self, timeout: float) -> None:
        self.default_timeout = timeout

    async def new_page(self) -> Any:
        if self._page_error is not None:
            raise self._page_error
        return self._page_factory()

    async def close(self) -> None:
        self._ledger.contexts_closed += 1


class FakeBrowser:
    def __init__(self, ledger: Ledger, page_factory: Callable[[], Any], page_error: Exception | None) -> None:
        self._ledger = ledger
        self._page_factory = page_factory
        self._page_error = page_error

    async def new_context(self, **options: Any) -> FakeContext:
        self._ledger.context_options.append(options)
        return FakeContext(self._ledger, self._page_factory, self._page_error)

    async def close(self) -> None:
        self._ledger.browsers_closed += 1


class FakeChromium:
    def __init__(self, driver: FakePlaywrightDriver) -> None:
        self._driver = driver

    async def launch(self, **options: Any) -> FakeBrowser:
        ledger = self._driver.ledger
        ledger.launch_options.append(options)
        if self._driver.launch_error is not None:
            raise self._driver.launch_error
        ledger.launched += 1
        return FakeBrowser(ledger, self._driver.page_factory, self._driver.page_error)


class FakePlaywright:
    def __init__(self, driver: FakePlaywrightDriver) -> None:
        self._driver = driver
        self.chromium = FakeChromium(driver)

    async def stop(self) -> None:
        self._driver.ledger.stopped += 1


class FakePlaywrightDriver:
    """Drop-in for ``async_playwright``: call it to get an object with ``start()``."""

    def __init__(
        self,
        page_factory: Callable[[], Any] | None = None,
        *,
        launch_error: Exception | None = None,
        page_error: Exception | None = None,
    ) -> None:
        self.ledger = Ledger()
        self.page_factory = page_factory or FakeFeedPage
        self.launch_error = launch_error
        self.page_error = page_error

    def __call__(self) -> FakePlaywrightDriver:
        return self

    async def start(self) -> FakePlaywright:
        self.ledger.started += 1
        return FakePlaywright(self)


def build_service(
    page_factory: Callable[[], Any] | None = None,
    *,
    cache: ReviewCache | None = None,
    driver: FakePlaywrightDriver | None = None,
    retry_attempts: int = 3,
    max_reviews: int = 25,
    max_scroll_attempts: int = 10,
    request_timeout_s: float = 30,
    sleeps: list[float] | None = None,
) -> ReviewScrapeService:
    """A ``ReviewScrapeService`` wired with real components over fake Playwright.

    All human pacing and retry backoff is zeroed; backoff delays are recorded
    in ``sleeps`` instead of awaited.
    """
    recorded = sleeps if sleeps is not None else []

    async def record_sleep(seconds: float) -> None:
        recorded.append(seconds)

    rng = random.Random(7)
    driver = driver or FakePlaywrightDriver(page_factory)
    behavior = HumanBehavior.instant(rng=rng)
    extractor = ExtractionPipeline()
    return ReviewScrapeService(
        cache if cache is not None else ReviewCache(ttl_seconds=3600),
        fingerprints=FingerprintSelector(rng=rng),
        sessions=SessionManager(playwright_factory=driver),
        navigator=NavigationController(behavior, navigation_timeout_ms=1000, selector_timeout_ms=50),
        extractor=extractor,
        paginator=ScrollPaginator(extractor, behavior, max_attempts=max_scroll_attempts),
        orchestrator=RetryOrchestrator(base_delay_ms=1000, rng=rng, sleep=record_sleep),
        max_reviews=max_reviews,
        retry_attempts=retry_attempts,
        request_timeout_s=request_timeout_s,
        maps_search_url="https://www.google.com/maps/search/",
    )

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from playwright.async_api import Error as PlaywrightError

from src.scraper.behavior import HumanBehavior
from src.scraper.errors import ScrapeError, ScrapeErrorKind
from src.scraper.session import BrowserSession

LOGGER = logging.getLogger(__name__)


class NavigationState(str, Enum):
    LOADING = "loading"
    CONSENT_CHECK = "consent_check"
    LISTING_READY = "listing_ready"
    FEED_ENTRY_WAIT = "feed_entry_wait"
    FEED_ENTRY_CLICK = "feed_entry_click"
    CONTAINER_WAIT = "container_wait"
    READY = "ready"
    NAVIGATION_TIMEOUT = "navigation_timeout"
    NO_FEED_FOUND = "no_feed_found"
    FEED_CONTAINER_MISSING = "feed_container_missing"


TRANSITIONS: dict[NavigationState, frozenset[NavigationState]] = {
    NavigationState.LOADING: frozenset({NavigationState.CONSENT_CHECK, NavigationState.NAVIGATION_TIMEOUT}),
    NavigationState.CONSENT_CHECK: frozenset({NavigationState.LISTING_READY}),
    NavigationState.LISTING_READY: frozenset({NavigationState.FEED_ENTRY_WAIT}),
    NavigationState.FEED_ENTRY_WAIT: frozenset({NavigationState.FEED_ENTRY_CLICK, NavigationState.NO_FEED_FOUND}),
    NavigationState.FEED_ENTRY_CLICK: frozenset({NavigationState.CONTAINER_WAIT}),
    NavigationState.CONTAINER_WAIT: frozenset({NavigationState.READY, NavigationState.FEED_CONTAINER_MISSING}),
    NavigationState.READY: frozenset(),
    NavigationState.NAVIGATION_TIMEOUT: frozenset(),
    NavigationState.NO_FEED_FOUND: frozenset(),
    NavigationState.FEED_CONTAINER_MISSING: frozenset(),
}

_OUTCOME_ERRORS = {
    NavigationState.NO_FEED_FOUND: (
        ScrapeErrorKind.NO_FEED_FOUND,
        "No reviews found for this location.",
    ),
    NavigationState.FEED_CONTAINER_MISSING: (
        ScrapeErrorKind.FEED_CONTAINER_MISSING,
        "Reviews container not found.",
    ),
}

ListingHook = Callable[[BrowserSession], Awaitable[None]]


@dataclass
class NavigationOutcome:
    state: NavigationState = NavigationState.LOADING
    history: list[NavigationState] = field(default_factory=lambda: [NavigationState.LOADING])

    @property
    def ready(self) -> bool:
        return self.state is NavigationState.READY

    def advance(self, target: NavigationState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal navigation transition {self.state.value} -> {target.value}.")
        self.state = target
        self.history.append(target)

    def raise_for_state(self) -> None:
        """Raise the matching ``ScrapeError`` when navigation ended without a feed."""
        if self.state in _OUTCOME_ERRORS:
            kind, detail = _OUTCOME_ERRORS[self.state]
            raise ScrapeError(kind, detail)


class NavigationController:
    def __init__(
        self,
        behavior: HumanBehavior,
        *,
        navigation_timeout_ms: int = 30000,
        selector_timeout_ms: int = 10000,
    ) -> None:
        self._behavior = behavior
        self._navigation_timeout_ms = navigation_timeout_ms
        self._selector_timeout_ms = selector_timeout_ms

    async def navigate(
        self,
        session: BrowserSession,
        url: str,
        *,
        on_listing_ready: ListingHook | None = None,
    ) -> NavigationOutcome:
        outcome = NavigationOutcome()
        page = session.require_page()
        locator = session.require_locator()

        try:
            await page.goto(url, wait_until="networkidle", timeout=self._navigation_timeout_ms)
        except PlaywrightError as exc:
            self._advance(session, outcome, NavigationState.NAVIGATION_TIMEOUT)
            raise ScrapeError(
                ScrapeErrorKind.NAVIGATION_TIMEOUT,
                f"Page did not settle within {self._navigation_timeout_ms} ms: {exc}",
            ) from exc
        await self._behavior.loading_pause()

        self._advance(session, outcome, NavigationState.CONSENT_CHECK)
        await self._dismiss_consent_if_present(session)

        self._advance(session, outcome, NavigationState.LISTING_READY)
        if on_listing_ready is not None:
            await on_listing_ready(session)

        self._advance(session, outcome, NavigationState.FEED_ENTRY_WAIT)
        entry = await locator.locate("REVIEWS_BUTTON", self._selector_timeout_ms)
        if entry is None:
            self._advance(session, outcome, NavigationState.NO_FEED_FOUND)
            return outcome

        self._advance(session, outcome, NavigationState.FEED_ENTRY_CLICK)
        try:
            await self._behavior.click(page, entry)
        except PlaywrightError as exc:
            # The container wait below decides whether the click took effect.
            LOGGER.warning("request_id=%s attempt=%d feed entry click failed: %s", session.request_id, session.attempt, exc)
        await self._behavior.loading_pause()

        self._advance(session, outcome, NavigationState.CONTAINER_WAIT)
        container = await locator.locate("REVIEWS_CONTAINER", self._selector_timeout_ms)
        if container is None:
            self._advance(session, outcome, NavigationState.FEED_CONTAINER_MISSING)
            return outcome

        self._advance(session, outcome, NavigationState.READY)
        return outcome

    async def _dismiss_consent_if_present(self, session: BrowserSession) -> None:
        page = session.require_page()
        try:
            button = await session.require_locator().find("CONSENT_BUTTON")
            if button is None:
                return
            await self._behavior.click(page, button)
            await page.wait_for_load_state("networkidle", timeout=self._navigation_timeout_ms)
            await self._behavior.loading_pause()
        except PlaywrightError as exc:
            # Not every region shows the interstitial; a failed dismissal is not fatal.
            LOGGER.warning("request_id=%s attempt=%d consent dismissal failed: %s", session.request_id, session.attempt, exc)

    def _advance(self, session: BrowserSession, outcome: NavigationOutcome, target: NavigationState) -> None:
        LOGGER.info(
            "request_id=%s attempt=%d navigation %s -> %s",
            session.request_id,
            session.attempt,
            outcome.state.value,
            target.value,
        )
        outcome.advance(target)

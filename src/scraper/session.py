from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from src.models.fingerprint import Fingerprint
from src.scraper.errors import ScrapeError, ScrapeErrorKind
from src.scraper.locator import ElementLocator
from src.scraper.selectors import DEFAULT_SELECTORS, SelectorSet

LOGGER = logging.getLogger(__name__)

LOCAL_PROFILE = "local"
SERVERLESS_PROFILE = "serverless"

_LOCAL_ARGS = ("--disable-blink-features=AutomationControlled",)
_SERVERLESS_ARGS = (
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--incognito",
    "--hide-scrollbars",
)
_WEBDRIVER_MASK = "Object.defineProperty(navigator, 'webdriver', {get: () => undefined});"


@dataclass
class BrowserSession:
    fingerprint: Fingerprint
    request_id: str = ""
    attempt: int = 0
    playwright: Playwright | None = None
    browser: Browser | None = None
    context: BrowserContext | None = None
    page: Page | None = None
    locator: ElementLocator | None = None
    closed: bool = field(default=False)

    def require_page(self) -> Page:
        if self.page is None or self.closed:
            raise RuntimeError("Browser session has no live page.")
        return self.page

    def require_locator(self) -> ElementLocator:
        if self.locator is None or self.closed:
            raise RuntimeError("Browser session has no live page.")
        return self.locator


class SessionManager:
    """Owns one Chromium process per scrape attempt.

    ``session()`` is the only way the pipeline acquires a browser: it closes
    the session exactly once on every exit path, cancellation included.
    """

    def __init__(
        self,
        *,
        profile: str = LOCAL_PROFILE,
        headless: bool = True,
        executable_path: str | None = None,
        serverless_executable_path: str = "/usr/bin/chromium",
        extra_chromium_args: list[str] | None = None,
        default_timeout_ms: int = 10000,
        selectors: SelectorSet = DEFAULT_SELECTORS,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        if profile not in {LOCAL_PROFILE, SERVERLESS_PROFILE}:
            raise ValueError(f"Unknown execution profile '{profile}'. Supported: local | serverless")
        self._profile = profile
        self._headless = headless
        self._executable_path = (executable_path or "").strip() or None
        self._serverless_executable_path = serverless_executable_path
        self._extra_chromium_args = list(extra_chromium_args or [])
        self._default_timeout_ms = default_timeout_ms
        self._selectors = selectors
        self._playwright_factory = playwright_factory

    @asynccontextmanager
    async def session(
        self,
        fingerprint: Fingerprint,
        *,
        request_id: str = "",
        attempt: int = 0,
    ) -> AsyncIterator[BrowserSession]:
        session = await self.open(fingerprint, request_id=request_id, attempt=attempt)
        try:
            yield session
        finally:
            await self.close(session)

    async def open(self, fingerprint: Fingerprint, *, request_id: str = "", attempt: int = 0) -> BrowserSession:
        session = BrowserSession(fingerprint=fingerprint, request_id=request_id, attempt=attempt)
        try:
            session.playwright = await self._playwright_factory().start()
            session.browser = await session.playwright.chromium.launch(**self.launch_options())
            session.context = await session.browser.new_context(
                user_agent=fingerprint.user_agent,
                viewport=fingerprint.viewport,
            )
            await session.context.add_init_script(_WEBDRIVER_MASK)
            session.context.set_default_timeout(self._default_timeout_ms)
            session.page = await session.context.new_page()
        except Exception as exc:
            await self.close(session)
            raise ScrapeError(
                ScrapeErrorKind.LAUNCH_FAILURE,
                f"Browser could not be started ({self._profile} profile): {exc}",
            ) from exc

        session.locator = ElementLocator(session.page, self._selectors)
        LOGGER.info(
            "request_id=%s attempt=%d session opened profile=%s viewport=%sx%s",
            request_id,
            attempt,
            self._profile,
            fingerprint.viewport_width,
            fingerprint.viewport_height,
        )
        return session

    async def close(self, session: BrowserSession) -> None:
        if session.closed:
            return
        session.closed = True

        # Each layer is released even if an outer one already failed to close.
        if session.context is not None:
            await self._release("context", session, session.context.close)
        if session.browser is not None:
            await self._release("browser", session, session.browser.close)
        if session.playwright is not None:
            await self._release("playwright", session, session.playwright.stop)

        session.page = None
        session.locator = None
        session.context = None
        session.browser = None
        session.playwright = None
        LOGGER.info("request_id=%s attempt=%d session closed", session.request_id, session.attempt)

    def launch_options(self) -> dict[str, Any]:
        if self._profile == SERVERLESS_PROFILE:
            options: dict[str, Any] = {
                "headless": True,
                "args": [*_SERVERLESS_ARGS, *self._extra_chromium_args],
                "executable_path": self._executable_path or self._serverless_executable_path,
            }
            return options

        options = {
            "headless": self._headless,
            "args": [*_LOCAL_ARGS, *self._extra_chromium_args],
        }
        if self._executable_path:
            options["executable_path"] = self._executable_path
        return options

    async def _release(self, name: str, session: BrowserSession, closer: Callable[[], Any]) -> None:
        try:
            await closer()
        except Exception:
            LOGGER.warning(
                "request_id=%s attempt=%d failed to release %s",
                session.request_id,
                session.attempt,
                name,
                exc_info=True,
            )

from __future__ import annotations

from playwright.async_api import Locator, Page, TimeoutError as PlaywrightTimeoutError

from src.scraper.selectors import DEFAULT_SELECTORS, SelectorSet

VISIBLE_ONLY = "visible=true"


class ElementLocator:
    """Resolves selector roles to visible Playwright locators on one page.

    Maps keeps hidden copies of panes and tabs attached to the DOM, so every
    lookup is narrowed to rendered elements before ``.first`` is taken.
    """

    def __init__(self, page: Page, selectors: SelectorSet = DEFAULT_SELECTORS) -> None:
        self._page = page
        self.selectors = selectors

    async def find(self, role: str) -> Locator | None:
        """Return the highest-priority visible element for ``role``, without waiting."""
        for selector in self.selectors.patterns(role):
            candidate = self._visible(selector)
            try:
                if await candidate.count() > 0:
                    return candidate
            except Exception:
                continue
        return None

    async def locate(self, role: str, timeout_ms: int) -> Locator | None:
        """Wait up to ``timeout_ms`` for any pattern of ``role`` to become visible.

        All patterns are raced through one CSS selector list, so the wait is
        bounded by a single timeout regardless of how many fallbacks a role has.
        The highest-priority pattern with a visible match is returned.
        """
        union = self._visible(", ".join(self.selectors.patterns(role)))
        try:
            await union.wait_for(state="visible", timeout=max(1, timeout_ms))
        except PlaywrightTimeoutError:
            return None

        found = await self.find(role)
        return found if found is not None else union

    def _visible(self, selector: str) -> Locator:
        return self._page.locator(selector).locator(VISIBLE_ONLY).first

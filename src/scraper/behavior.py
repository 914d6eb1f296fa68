from __future__ import annotations

import asyncio
import random

from playwright.async_api import Locator, Page


class HumanBehavior:
    """Randomized pacing and pointer movement shared by navigation and scrolling."""

    def __init__(
        self,
        *,
        min_click_delay_ms: int = 100,
        max_click_delay_ms: int = 300,
        min_scroll_delay_ms: int = 800,
        max_scroll_delay_ms: int = 2000,
        min_loading_delay_ms: int = 2000,
        max_loading_delay_ms: int = 4000,
        wander_probability: float = 0.3,
        rng: random.Random | None = None,
    ) -> None:
        self._click_range = self._ordered(min_click_delay_ms, max_click_delay_ms)
        self._scroll_range = self._ordered(min_scroll_delay_ms, max_scroll_delay_ms)
        self._loading_range = self._ordered(min_loading_delay_ms, max_loading_delay_ms)
        self._press_range = (50, 150) if self._click_range[1] > 0 else (0, 0)
        self._wander_probability = wander_probability
        self.rng = rng or random.Random()

    @classmethod
    def instant(cls, rng: random.Random | None = None) -> HumanBehavior:
        return cls(
            min_click_delay_ms=0,
            max_click_delay_ms=0,
            min_scroll_delay_ms=0,
            max_scroll_delay_ms=0,
            min_loading_delay_ms=0,
            max_loading_delay_ms=0,
            wander_probability=0.0,
            rng=rng,
        )

    async def pause(self, min_ms: int, max_ms: int) -> None:
        delay_ms = self.rng.randint(min_ms, max_ms) if max_ms > 0 else 0
        await asyncio.sleep(max(0, delay_ms) / 1000)

    async def click_pause(self) -> None:
        await self.pause(*self._click_range)

    async def scroll_pause(self) -> None:
        await self.pause(*self._scroll_range)

    async def loading_pause(self) -> None:
        await self.pause(*self._loading_range)

    async def click(self, page: Page, locator: Locator) -> None:
        await self.click_pause()
        try:
            await locator.scroll_into_view_if_needed()
        except Exception:
            pass

        box = await locator.bounding_box()
        if box is None:
            await locator.click()
            return

        x = box["x"] + box["width"] * self.rng.random()
        y = box["y"] + box["height"] * self.rng.random()
        await page.mouse.move(x, y, steps=10)
        await self.pause(*self._press_range)
        await page.mouse.down()
        await self.pause(*self._press_range)
        await page.mouse.up()

    async def wander(self, page: Page) -> None:
        """Occasionally drift the pointer somewhere inside the viewport."""
        if self.rng.random() >= self._wander_probability:
            return
        viewport = page.viewport_size
        if not viewport:
            return
        x = self.rng.randint(0, max(0, viewport["width"] - 1))
        y = self.rng.randint(0, max(0, viewport["height"] - 1))
        await page.mouse.move(x, y, steps=5)

    @staticmethod
    def _ordered(low: int, high: int) -> tuple[int, int]:
        low = max(0, low)
        return low, max(low, high)

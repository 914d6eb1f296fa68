from __future__ import annotations

import logging
from typing import Any

from src.models.review import ReviewRecord
from src.scraper.behavior import HumanBehavior
from src.scraper.errors import ScrapeError, ScrapeErrorKind
from src.scraper.extraction import ExtractionPipeline
from src.scraper.selectors import DEFAULT_SELECTORS, SelectorSet
from src.scraper.session import BrowserSession

LOGGER = logging.getLogger(__name__)

SMOOTH_SCROLL_SCRIPT = """
async (payload) => {
    let container = null;
    for (const selector of payload.containerSelectors) {
        container = document.querySelector(selector);
        if (container) break;
    }

    if (!container) {
        let card = null;
        for (const selector of payload.cardSelectors) {
            card = document.querySelector(selector);
            if (card) break;
        }
        let parent = card ? card.parentElement : null;
        while (parent) {
            const style = window.getComputedStyle(parent);
            const canScroll = parent.scrollHeight > parent.clientHeight + 20;
            if ((style.overflowY === "auto" || style.overflowY === "scroll") && canScroll) {
                container = parent;
                break;
            }
            parent = parent.parentElement;
        }
    }

    if (!container) {
        return {found: false, scrolled: false, at_bottom: true};
    }

    const before = container.scrollTop;
    const target = Math.min(before + payload.stepPx, container.scrollHeight);
    for (let position = before; position < target; position += 10) {
        container.scrollTop = position;
        await new Promise((resolve) => setTimeout(resolve, 10));
    }
    container.scrollTop = target;

    const after = container.scrollTop;
    return {
        found: true,
        scrolled: after > before,
        at_bottom: after + container.clientHeight >= container.scrollHeight - 4
    };
}
"""


class ScrollPaginator:
    """Drives the virtualized review feed until it stops growing or the cap is hit.

    A plateau between two consecutive extractions is read as "feed exhausted".
    With ``confirm_convergence`` the first plateau triggers one more scroll and
    only a second consecutive plateau stops collection.
    """

    def __init__(
        self,
        extractor: ExtractionPipeline,
        behavior: HumanBehavior,
        *,
        max_attempts: int = 10,
        min_step_px: int = 100,
        max_step_px: int = 400,
        confirm_convergence: bool = False,
        selectors: SelectorSet = DEFAULT_SELECTORS,
    ) -> None:
        self._extractor = extractor
        self._behavior = behavior
        self._max_attempts = max(0, max_attempts)
        self._min_step_px = max(10, min_step_px)
        self._max_step_px = max(self._min_step_px, max_step_px)
        self._confirm_convergence = confirm_convergence
        self._scroll_payload = {
            "containerSelectors": list(selectors.patterns("REVIEWS_CONTAINER")),
            "cardSelectors": list(selectors.patterns("REVIEW_CARDS")),
        }

    async def collect(self, session: BrowserSession, cap: int) -> list[ReviewRecord]:
        cap = max(0, cap)
        records = await self._extractor.extract_reviews(session)
        previous_count = len(records)
        attempts = 0
        pending_confirmation = False
        reason = "max_attempts"
        at_bottom = False

        while attempts < self._max_attempts:
            metrics = await self.scroll_once(session)
            at_bottom = bool(metrics.get("at_bottom"))
            await self._behavior.scroll_pause()
            await self._behavior.wander(session.require_page())

            records = await self._extractor.extract_reviews(session)
            current_count = len(records)
            attempts += 1

            if current_count >= cap:
                reason = "cap"
                break

            if current_count == previous_count:
                if self._confirm_convergence and not pending_confirmation:
                    pending_confirmation = True
                    continue
                reason = "converged"
                break

            pending_confirmation = False
            previous_count = current_count

        LOGGER.info(
            "request_id=%s attempt=%d feed collection stopped reason=%s at_bottom=%s scrolls=%d reviews=%d cap=%d",
            session.request_id,
            session.attempt,
            reason,
            at_bottom,
            attempts,
            len(records),
            cap,
        )
        return records[:cap]

    async def scroll_once(self, session: BrowserSession) -> dict[str, Any]:
        page = session.require_page()
        payload = {
            **self._scroll_payload,
            "stepPx": self._behavior.rng.randint(self._min_step_px, self._max_step_px),
        }
        try:
            metrics = await page.evaluate(SMOOTH_SCROLL_SCRIPT, payload)
        except Exception as exc:
            raise ScrapeError(ScrapeErrorKind.EXTRACTION_FAILURE, f"Feed scroll failed: {exc}") from exc
        return metrics if isinstance(metrics, dict) else {}

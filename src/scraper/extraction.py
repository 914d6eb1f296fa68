from __future__ import annotations

import re
from typing import Any

from src.models.review import (
    ANONYMOUS_AUTHOR,
    NO_RATING,
    NO_REVIEW_TEXT,
    BusinessSummary,
    ReviewRecord,
)
from src.scraper.errors import ScrapeError, ScrapeErrorKind
from src.scraper.selectors import DEFAULT_SELECTORS, SelectorSet
from src.scraper.session import BrowserSession

BUSINESS_SCRIPT = """
(selectors) => {
    const first = (root, patterns) => {
        for (const selector of patterns) {
            const node = root.querySelector(selector);
            if (node) return node;
        }
        return null;
    };
    const text = (node) => (node && node.textContent ? node.textContent : null);

    const totalNode = first(document, selectors.TOTAL_REVIEWS);
    return {
        name: text(first(document, selectors.BUSINESS_NAME)),
        average_rating: text(first(document, selectors.BUSINESS_RATING)),
        total_reviews: totalNode
            ? (totalNode.textContent || totalNode.getAttribute('aria-label'))
            : null
    };
}
"""

REVIEWS_SCRIPT = """
(selectors) => {
    const first = (root, patterns) => {
        for (const selector of patterns) {
            const node = root.querySelector(selector);
            if (node) return node;
        }
        return null;
    };
    const text = (node) => (node && node.textContent ? node.textContent : null);

    let cards = [];
    for (const selector of selectors.REVIEW_CARDS) {
        cards = Array.from(document.querySelectorAll(selector));
        if (cards.length > 0) break;
    }

    return cards.map((card) => {
        const ratingNode = first(card, selectors.RATING_LABEL);
        return {
            review_id: card.getAttribute('data-review-id'),
            author_name: text(first(card, selectors.AUTHOR_NAME)),
            rating_label: ratingNode ? ratingNode.getAttribute('aria-label') : null,
            collapsed_text: text(first(card, selectors.REVIEW_TEXT_COLLAPSED)),
            expanded_text: text(first(card, selectors.REVIEW_TEXT_EXPANDED)),
            date_posted: text(first(card, selectors.DATE_POSTED))
        };
    });
}
"""

_BUSINESS_ROLES = ("BUSINESS_NAME", "BUSINESS_RATING", "TOTAL_REVIEWS")
_REVIEW_ROLES = (
    "REVIEW_CARDS",
    "AUTHOR_NAME",
    "RATING_LABEL",
    "REVIEW_TEXT_COLLAPSED",
    "REVIEW_TEXT_EXPANDED",
    "DATE_POSTED",
)


def clean_text(value: Any) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def parse_total_reviews(value: Any) -> int | None:
    """Digits of the label text as an integer; ``None`` when nothing numeric remains.

    ``"(1.234 reviews)"`` -> 1234. Zero is only returned when the source says zero.
    """
    if value is None:
        return None
    digits = re.sub(r"\D", "", str(value))
    if not digits:
        return None
    return int(digits)


def parse_business(raw: dict[str, Any] | None) -> BusinessSummary:
    raw = raw or {}
    return BusinessSummary(
        name=clean_text(raw.get("name")),
        average_rating=clean_text(raw.get("average_rating")),
        total_reviews=parse_total_reviews(raw.get("total_reviews")),
    )


def parse_review(raw: dict[str, Any]) -> ReviewRecord:
    # Long reviews render a truncated wrapper and, once expanded, a full-text span.
    text = clean_text(raw.get("expanded_text")) or clean_text(raw.get("collapsed_text"))
    return ReviewRecord(
        author_name=clean_text(raw.get("author_name")) or ANONYMOUS_AUTHOR,
        rating=clean_text(raw.get("rating_label")) or NO_RATING,
        text=text or NO_REVIEW_TEXT,
        review_id=clean_text(raw.get("review_id")),
        date_posted=clean_text(raw.get("date_posted")),
    )


class ExtractionPipeline:
    """Reads the currently rendered DOM into records.

    Both reads are a single ``page.evaluate`` each: no clicks, no waits.
    Waiting for the DOM to settle belongs to navigation and scrolling.
    """

    def __init__(self, selectors: SelectorSet = DEFAULT_SELECTORS) -> None:
        self._business_selectors = selectors.as_dict(*_BUSINESS_ROLES)
        self._review_selectors = selectors.as_dict(*_REVIEW_ROLES)

    async def extract_business(self, session: BrowserSession) -> BusinessSummary:
        raw = await self._evaluate(session, BUSINESS_SCRIPT, self._business_selectors)
        return parse_business(raw if isinstance(raw, dict) else None)

    async def extract_reviews(self, session: BrowserSession) -> list[ReviewRecord]:
        raw_items = await self._evaluate(session, REVIEWS_SCRIPT, self._review_selectors)
        if not isinstance(raw_items, list):
            return []
        return [parse_review(item) for item in raw_items if isinstance(item, dict)]

    async def _evaluate(self, session: BrowserSession, script: str, selectors: dict[str, list[str]]) -> Any:
        page = session.require_page()
        try:
            return await page.evaluate(script, selectors)
        except Exception as exc:
            raise ScrapeError(
                ScrapeErrorKind.EXTRACTION_FAILURE,
                f"DOM read failed: {exc}",
            ) from exc

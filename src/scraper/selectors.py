from __future__ import annotations

from collections.abc import Mapping
from typing import Final

# Selector strategy based on UI structure and behavior attributes.
# Class names are obfuscated by Google Maps and drift between releases, so each
# role lists fallbacks in priority order.
SELECTOR_PATTERNS: Final[dict[str, tuple[str, ...]]] = {
    # Cookie / consent interstitial
    "CONSENT_BUTTON": (
        "button[aria-label*='Agree' i]",
        "button[aria-label*='Accept' i]",
        "button[aria-label*='Aceptar' i]",
        "form[action*='consent'] button",
    ),
    # Listing header (overview pane)
    "BUSINESS_NAME": (
        "h1.DUwDvf",
        "h1[class*='DUwDvf']",
    ),
    "BUSINESS_RATING": (
        "div.F7nice span[aria-hidden='true']",
    ),
    "TOTAL_REVIEWS": (
        "div.F7nice span[aria-label*='review' i]",
        "div.F7nice span[aria-label*='rese' i]",
    ),
    # Feed entry point and container
    "REVIEWS_BUTTON": (
        "button[aria-label*='Reviews for' i]",
        "button[role='tab'][aria-label*='review' i]",
        "button[role='tab'][aria-label*='rese' i]",
        "button[jsaction*='reviewChart.moreReviews']",
    ),
    "REVIEWS_CONTAINER": (
        ".m6QErb.DxyBCb.kA9KIf.dS8AEf",
        "div.m6QErb.DxyBCb[tabindex='-1']",
    ),
    # Review cards and fields
    "REVIEW_CARDS": (
        "div.jftiEf[data-review-id]",
        "div.jftiEf",
    ),
    "AUTHOR_NAME": (
        "div.d4r55",
    ),
    "RATING_LABEL": (
        "span.kvMYJc[role='img']",
        "span.kvMYJc",
        "[role='img'][aria-label*='star' i]",
        "[role='img'][aria-label*='estrella' i]",
    ),
    "REVIEW_TEXT_COLLAPSED": (
        ".MyEned",
    ),
    "REVIEW_TEXT_EXPANDED": (
        ".wiI7pd",
        ".MyEned .wiI7pd",
    ),
    "DATE_POSTED": (
        "span.rsqaWe",
    ),
}


class SelectorSet:
    """Role -> selector patterns table.

    Pipeline code addresses elements by role only, so a new Maps release is
    handled by swapping this table rather than editing the pipeline.
    """

    def __init__(self, patterns: Mapping[str, tuple[str, ...]] | None = None) -> None:
        self._patterns = dict(patterns or SELECTOR_PATTERNS)

    def patterns(self, role: str) -> tuple[str, ...]:
        try:
            return self._patterns[role]
        except KeyError as exc:
            raise KeyError(f"Unknown selector role '{role}'.") from exc

    def as_dict(self, *roles: str) -> dict[str, list[str]]:
        return {role: list(self.patterns(role)) for role in roles}

    def override(self, **patterns: tuple[str, ...]) -> SelectorSet:
        merged = dict(self._patterns)
        merged.update(patterns)
        return SelectorSet(merged)


DEFAULT_SELECTORS = SelectorSet()

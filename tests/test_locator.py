import asyncio

from fakes import FakeFeedPage
from src.scraper.locator import ElementLocator

ENTRY_PATTERNS = (
    "button[aria-label*='Reviews for' i]",
    "button[role='tab'][aria-label*='review' i]",
)


def test_locate_skips_hidden_higher_priority_match() -> None:
    page = FakeFeedPage(present_roles={"REVIEWS_BUTTON"}, hidden_selectors={ENTRY_PATTERNS[0]})
    locator = ElementLocator(page)

    found = asyncio.run(locator.locate("REVIEWS_BUTTON", 50))

    assert found is not None
    assert found._selector == ENTRY_PATTERNS[1]
    assert asyncio.run(found.bounding_box()) is not None


def test_find_ignores_attached_but_hidden_elements() -> None:
    page = FakeFeedPage(present_roles=set(), hidden_selectors={ENTRY_PATTERNS[0]})
    locator = ElementLocator(page)

    assert asyncio.run(locator.find("REVIEWS_BUTTON")) is None
    assert asyncio.run(locator.locate("REVIEWS_BUTTON", 50)) is None


def test_locate_returns_first_visible_pattern_in_priority_order() -> None:
    page = FakeFeedPage(present_roles={"REVIEWS_BUTTON"})

    found = asyncio.run(ElementLocator(page).locate("REVIEWS_BUTTON", 50))

    assert found._selector == ENTRY_PATTERNS[0]

from __future__ import annotations

from enum import Enum


class ScrapeErrorKind(str, Enum):
    INVALID_QUERY = "invalid_query"
    LAUNCH_FAILURE = "launch_failure"
    NAVIGATION_TIMEOUT = "navigation_timeout"
    NO_FEED_FOUND = "no_feed_found"
    FEED_CONTAINER_MISSING = "feed_container_missing"
    EXTRACTION_FAILURE = "extraction_failure"
    EXHAUSTED = "exhausted"

    @property
    def retryable(self) -> bool:
        return self is not ScrapeErrorKind.INVALID_QUERY

    @property
    def status_code(self) -> int:
        if self is ScrapeErrorKind.INVALID_QUERY:
            return 400
        if self in {ScrapeErrorKind.NO_FEED_FOUND, ScrapeErrorKind.FEED_CONTAINER_MISSING}:
            return 404
        return 500


class ScrapeError(Exception):
    """Failure of one scrape request, labelled with a closed set of kinds.

    ``request_id`` is the correlation id of the inbound request. Components
    deep in the pipeline may raise without it; the service stamps it before
    the error leaves the request scope.
    """

    def __init__(self, kind: ScrapeErrorKind, detail: str, *, request_id: str | None = None) -> None:
        self.kind = kind
        self.detail = detail
        self.request_id = request_id
        super().__init__(f"{kind.value}: {detail}")

    def with_request_id(self, request_id: str) -> ScrapeError:
        if self.request_id is None:
            self.request_id = request_id
        return self

    def to_payload(self) -> dict[str, str | None]:
        return {"error": self.detail, "kind": self.kind.value, "request_id": self.request_id}

"""Error types raised by upstream lookups and the tracking pipeline."""


class LiveTrackerError(Exception):
    """Base error for the live tracker."""


class FetchError(LiveTrackerError):
    """An upstream request did not produce usable data."""


class TransportError(FetchError):
    """The request failed at the network or HTTP level."""


class ParseError(FetchError):
    """The response body was malformed or had an unexpected shape."""


class UpstreamLogicError(FetchError):
    """The upstream answered with a non-success result code."""


class PaginationError(FetchError):
    """Page size escalation hit the ceiling without a terminal marker."""


class ExtractionError(ParseError):
    """The cut number pattern did not match exactly once."""


class DisambiguationError(ParseError):
    """Recording URLs could not be split into one URL per CDN provider."""


class RetryExhaustedError(LiveTrackerError):
    """An operation kept failing after every allowed attempt."""

    def __init__(self, action: str, attempts: int, last_error: Exception) -> None:
        super().__init__(
            f"{action} failed after {attempts} attempts: {last_error}"
        )
        self.action = action
        self.attempts = attempts
        self.last_error = last_error

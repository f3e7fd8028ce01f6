"""
Errors — Exception taxonomy for the network crawler.

  CrawlerError
    ServiceError              Anything that went wrong talking to the remote API
      TransientServiceError   Timeouts, connection resets, HTTP 5xx/429
      PermanentServiceError   Structured error payload returned by the service
        EntityNotFoundError   The requested username does not exist
      ProtocolFormatError     Unparseable body or unexpected response shape
    BusyError                 A second crawl was started on a busy analyzer
    CrawlCancelledError       Cancellation was observed at a polling point

Only ServiceError subclasses are ever absorbed by the pagination and
enrichment layers. BusyError and CrawlCancelledError always reach the caller.
"""

from typing import Optional


class CrawlerError(Exception):
    """Base class for every error raised by this package."""


class ServiceError(CrawlerError):
    """A remote call did not produce a usable response."""


class TransientServiceError(ServiceError):
    """A failure that may succeed if the request is repeated."""


class PermanentServiceError(ServiceError):
    """The service answered with an error payload.

    Attributes:
        code: The service's error code, if one was returned.
        message: The service's error message.
    """

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"{self.message} (code {self.code})"


class EntityNotFoundError(PermanentServiceError):
    """The handle does not map to any entity."""


class ProtocolFormatError(ServiceError):
    """The response could not be parsed or had an unexpected shape."""


class BusyError(CrawlerError):
    """An asynchronous crawl is already in progress on this analyzer."""


class CrawlCancelledError(CrawlerError):
    """The crawl was asked to stop."""

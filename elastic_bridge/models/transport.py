"""TransportResponse model: outcome of one HTTP round-trip against the search service."""

from pydantic import BaseModel


class TransportResponse(BaseModel):
    """Status and raw body of a single HTTP exchange.

    Network level failures never raise out of the transport. They are
    reported with status_code 0, an empty body and the failure text in
    error, so a ResultCursor built from them reports is_error().

    Attributes:
        status_code: HTTP status returned by the service, 0 when no response was received.
        body:        Raw response text.
        error:       Description of the transport failure, if any.
    """

    status_code: int
    body: str = ""
    error: str | None = None

    def is_success(self) -> bool:
        return 200 <= self.status_code <= 299

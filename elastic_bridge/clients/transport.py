"""The transport primitive used by the query layer.

A transport is any callable with the signature of send_request(): it takes a
URL, HTTP method, query-string parameters, headers and a raw request body and
returns a TransportResponse. Clients expose one bound to their own
httpx.Client (ClientInterface.do_transport); send_request() is the
connection-less default used by QueryNode and ResultCursor.
"""

import logging
from typing import Any, Protocol

import httpx

from elastic_bridge.models.transport import TransportResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class Transport(Protocol):
    def __call__(
        self,
        url: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        content: str | bytes | None = None,
    ) -> TransportResponse: ...


def send_request(
    url: str,
    method: str = "GET",
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    content: str | bytes | None = None,
    client: httpx.Client | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> TransportResponse:
    """Execute one HTTP request and report the outcome without raising.

    Args:
        url: Absolute request URL.
        method: HTTP method. Search requests use GET with a body.
        params: URL query parameters.
        headers: Request headers.
        content: Raw request body.
        client: Reuse this httpx.Client instead of opening a one-shot connection.
        timeout: Request timeout in seconds.

    Returns:
        TransportResponse: Status and body. On network failure status_code is 0
            and error carries the failure text.
    """
    kwargs: dict = {
        "params": params,
        "headers": headers,
        "content": content,
        "timeout": timeout,
    }
    try:
        if client is not None:
            response = client.request(method, url, **kwargs)
        else:
            with httpx.Client() as one_shot:
                response = one_shot.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.error("%s request to %s failed: %s", method, url, e)
        return TransportResponse(status_code=0, body="", error=str(e) or type(e).__name__)

    logger.debug("%s %s -> %d", method, url, response.status_code)
    return TransportResponse(status_code=response.status_code, body=response.text)

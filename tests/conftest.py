import json
import logging

import pytest

from elastic_bridge.helper.HelperConfig import HelperConfig
from elastic_bridge.models.transport import TransportResponse


class FakeTransport:
    """Transport callable replaying queued responses and recording every call."""

    def __init__(self, responses: list[TransportResponse] | None = None):
        self.responses = list(responses or [])
        self.calls: list[dict] = []

    def queue(self, body, status_code: int = 200) -> None:
        if not isinstance(body, str):
            body = json.dumps(body)
        self.responses.append(TransportResponse(status_code=status_code, body=body))

    def __call__(self, url, method="GET", params=None, headers=None, content=None) -> TransportResponse:
        self.calls.append({
            "url": url,
            "method": method,
            "params": params,
            "headers": headers,
            "content": content,
        })
        if not self.responses:
            raise AssertionError(f"Unexpected request to {url}")
        return self.responses.pop(0)


def make_page(start: int, size: int, total: int, scroll_id: str | None = None) -> dict:
    """A search response holding documents start..start+size-1."""
    page = {
        "took": 3,
        "hits": {
            "total": total,
            "hits": [{"_id": str(i), "_source": {"n": i}} for i in range(start, start + size)],
        },
    }
    if scroll_id is not None:
        page["_scroll_id"] = scroll_id
    return page


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("elastic_bridge.tests")


@pytest.fixture
def env() -> dict[str, str]:
    return {}


@pytest.fixture
def helper_config(logger, env) -> HelperConfig:
    return HelperConfig(logger=logger, env=env)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()

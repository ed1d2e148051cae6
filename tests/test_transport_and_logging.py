import json
import logging

import httpx
import pytest

from elastic_bridge import scan_runner
from elastic_bridge.clients.transport import send_request
from elastic_bridge.logging.logging_setup import ColorLogger, ColoredFormatter, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logging():
    """setup_logging() reconfigures the root logger; put the previous state back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    httpx_level = logging.getLogger("httpx").level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(httpx_level)


# --- transport


def test_send_request_with_client():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, text='{"ok":true}')

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        resp = send_request(
            "http://es:9200/_search",
            "GET",
            params={"size": 1},
            headers={"Content-Type": "application/json"},
            content="{}",
            client=client,
        )

    assert resp.status_code == 201
    assert resp.body == '{"ok":true}'
    assert resp.error is None
    assert seen[0].method == "GET"
    assert seen[0].content == b"{}"
    assert str(seen[0].url) == "http://es:9200/_search?size=1"


def test_send_request_reports_failures(caplog):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with caplog.at_level(logging.ERROR):
            resp = send_request("http://es:9200/_search", client=client)

    assert resp.status_code == 0
    assert resp.body == ""
    assert "timed out" in resp.error
    assert "failed" in caplog.text


# --- logging


def test_setup_logging_returns_color_logger(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    monkeypatch.setenv("LOG_LEVEL", "debug")

    logger = setup_logging()

    assert isinstance(logger, ColorLogger)
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG

    logger.info("written to file")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "written to file" in (tmp_path / "elastic_bridge.log").read_text(encoding="utf-8")


def test_setup_logging_quiets_httpx(monkeypatch):
    monkeypatch.delenv("LOG_DIR", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "info")

    setup_logging()

    assert logging.getLogger("httpx").level == logging.WARNING


def test_colored_formatter():
    formatter = ColoredFormatter(tz_name="UTC", fmt="%(levelname)s - %(message)s")
    record = logging.LogRecord("t", logging.WARNING, __file__, 1, "page %d", (3,), None)
    record.color = "cyan"

    line = formatter.format(record)

    assert line.startswith("\033[36m")
    assert line.endswith("\033[0m")
    assert "⚠️ page 3" in line


def test_color_logger_passes_color(caplog):
    logger = ColorLogger(logging.getLogger("elastic_bridge.tests.color"))

    with caplog.at_level(logging.INFO):
        logger.info("hello %s", "world", color="green")

    assert caplog.records[-1].getMessage() == "hello world"
    assert caplog.records[-1].color == "green"


# --- command line runner


@pytest.mark.parametrize("query,message", [
    ("{not json", "not valid JSON"),
    ("[1, 2]", "must be a JSON object"),
])
def test_scan_runner_rejects_bad_query(monkeypatch, capsys, query, message):
    def get_client(self):
        raise AssertionError("no client should be created for a bad query")

    monkeypatch.delenv("LOG_DIR", raising=False)
    monkeypatch.setattr(scan_runner.SearchClientManager, "get_client", get_client)

    assert scan_runner.main([query]) == 2

    captured = capsys.readouterr()
    assert captured.out == ""
    assert message in captured.err


def test_scan_runner_dumps_documents(monkeypatch, capsys):
    pages = [
        {"_scroll_id": "c1", "hits": {"total": 2, "hits": []}},
        {"_scroll_id": "c2", "hits": {"total": 2, "hits": [{"_id": "1"}, {"_id": "2"}]}},
        {"_scroll_id": "c3", "hits": {"total": 2, "hits": []}},
    ]

    def handler(request):
        return httpx.Response(200, text=json.dumps(pages.pop(0)))

    original_get_client = scan_runner.SearchClientManager.get_client

    def get_client(self):
        client = original_get_client(self)
        client.boot = lambda transport=None: type(client).boot(client, transport=httpx.MockTransport(handler))
        return client

    for key in ("LOG_DIR", "SEARCH_ENGINES", "SEARCH_ELASTICSEARCH_URL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(scan_runner.SearchClientManager, "get_client", get_client)

    assert scan_runner.main(["--fetch-size", "2"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert [json.loads(line)["_id"] for line in lines] == ["1", "2"]

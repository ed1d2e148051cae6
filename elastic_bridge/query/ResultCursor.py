"""ResultCursor: a forward-only view over the documents of a search response.

The cursor keeps the decoded response as metadata (took, facets, hits,
_scroll_id, ...) and walks the documents in hits.hits. When the response
belongs to a scroll (scan) and the current page runs out, the cursor asks
the service for the next page and continues from there. Only one page is
held in memory at a time, so the cursor cannot be rewound past the page it
is on.
"""

import json
import logging
from collections.abc import Iterator, Mapping
from typing import Any

from elastic_bridge.clients.transport import Transport, send_request
from elastic_bridge.models.scroll import ScrollContext
from elastic_bridge.query.errors import NotScrollableError

logger = logging.getLogger(__name__)

SCROLL_ID_FIELD = "_scroll_id"


class ResultCursor:
    def __init__(
        self,
        body: str | bytes | Mapping[str, Any] | None,
        status: int = 200,
        server_url: str | None = None,
        keep_alive: str | None = None,
        transport: Transport | None = None,
    ) -> None:
        """
        Args:
            body: Raw response text, or an already decoded response.
            status: HTTP status of the response.
            server_url: Base URL of the service. Together with a scroll id in
                the body it enables fetching further pages.
            keep_alive: Scroll keep-alive sent with every continuation fetch.
            transport: Callable used for continuation fetches. Defaults to send_request.
        """
        self._error = False
        self._metadata: dict[str, Any] = {}
        self._results: list[Any] = []
        self._position = 0
        self._offset = 0
        self._transport = transport or send_request

        self._process_response(body, status)

        self._scroll: ScrollContext | None = None
        if self.get_scroll_id() is not None and server_url is not None:
            self._scroll = ScrollContext.for_server(server_url, keep_alive)

    def _process_response(self, body: str | bytes | Mapping[str, Any] | None, status: int) -> None:
        self._error = status < 200 or status > 299

        decoded = self._decode(body)
        if not decoded or not isinstance(decoded, Mapping):
            decoded = {}
            self._error = True

        # every top-level field is kept so to_json() reproduces the response
        self._metadata = dict(decoded)

        hits = self._metadata.get("hits")
        results = hits.get("hits") if isinstance(hits, Mapping) else None
        self._results = list(results) if isinstance(results, list) else []
        self.rewind()

    @staticmethod
    def _decode(body: str | bytes | Mapping[str, Any] | None) -> Any:
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        if not isinstance(body, str):
            return body
        if not body.strip():
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            logger.warning("Could not decode search response: %s", e)
            return None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def is_error(self) -> bool:
        return self._error

    def get_results(self) -> list[Any]:
        """Documents of the page currently loaded."""
        return self._results

    def has_facets(self) -> bool:
        return self._metadata.get("facets") is not None

    def get_facets(self) -> Any:
        return self._metadata["facets"] if self.has_facets() else {}

    def get_total_hits(self) -> int:
        """Total number of matching documents reported by the service, 0 if absent.

        Both the plain integer form and the {"value": n, "relation": ...} form are understood.
        """
        hits = self._metadata.get("hits")
        total = hits.get("total") if isinstance(hits, Mapping) else None
        if isinstance(total, Mapping):
            total = total.get("value")
        return total if total is not None else 0

    def get_elapsed(self) -> int:
        """Milliseconds the service spent on the request ("took"), 0 if absent."""
        took = self._metadata.get("took")
        return took if took is not None else 0

    def get_scroll_id(self) -> str | None:
        return self._metadata.get(SCROLL_ID_FIELD)

    def is_scrollable(self) -> bool:
        return self._scroll is not None and self.get_scroll_id() is not None

    def count(self) -> int:
        """Number of documents on the current page, not the scroll total."""
        return len(self._results)

    def get(self, name: str, default: Any = None) -> Any:
        return self._metadata.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self._metadata[name]

    def __contains__(self, name: object) -> bool:
        return name in self._metadata

    ##########################################
    ############### ITERATION ################
    ##########################################

    def rewind(self) -> None:
        """Go back to the first document of the current page. Earlier scroll pages are gone."""
        self._position = 0

    def has_current(self) -> bool:
        """Report whether a document is available at the current position.

        This call may block on network I/O: when the current page is
        exhausted and the response is scrollable, the next page is fetched
        synchronously and replaces the current one before answering.
        Iteration ends for good when no scroll is known, or when the fetched page is
        empty or an error.

        Returns:
            bool: True if current() can be called.
        """
        if self._position < len(self._results):
            return True
        if not self.is_scrollable():
            return False
        self.scroll()
        return self._position < len(self._results) and not self._error

    def current(self) -> Any:
        if self._position >= len(self._results):
            raise IndexError("No document at the current position; check has_current() first.")
        return self._results[self._position]

    def key(self) -> int:
        """Index of the current document across all pages fetched so far."""
        return self._position + self._offset

    def advance(self) -> None:
        self._position += 1

    def scroll(self) -> None:
        """Fetch the next scroll page and make it the current page.

        Blocks until the HTTP round-trip completes. Metadata, results and the
        error flag are replaced by the new response; the running offset keeps
        key() increasing across pages.

        Raises:
            NotScrollableError: If the response carries no scroll id or no scroll endpoint is known.
        """
        if not self.is_scrollable():
            raise NotScrollableError("Not a scrollable response.")

        # keep track of our offset in the larger result set
        self._offset += len(self._results)

        logger.debug("Fetching next scroll page from %s (offset %d)", self._scroll.scroll_url, self._offset)
        resp = self._transport(
            self._scroll.scroll_url,
            "GET",
            {"scroll": self._scroll.keep_alive},
            None,
            self.get_scroll_id(),
        )
        if not resp.is_success():
            logger.error("Scroll page request failed with status %d: %s", resp.status_code, resp.error or resp.body)
        self._process_response(resp.body, resp.status_code)

        # an empty or failed page ends the scroll, even if it still carries a scroll id
        if self._error or not self._results:
            logger.debug("Scroll exhausted after %d documents", self._offset)
            self._scroll = None

    def items(self) -> Iterator[tuple[int, Any]]:
        """Yield (key, document) pairs from the current position on.

        Single pass, and blocking: moving past the end of a page fetches the next one.
        """
        while self.has_current():
            yield self.key(), self.current()
            self.advance()

    def __iter__(self) -> Iterator[Any]:
        """Yield documents from the current position on. May block while fetching scroll pages."""
        for _, document in self.items():
            yield document

    ##########################################
    ############# SERIALISATION ##############
    ##########################################

    def to_dict(self) -> dict[str, Any]:
        return dict(self._metadata)

    def to_json(self) -> str:
        return json.dumps(self._metadata, separators=(",", ":"))

    def __repr__(self) -> str:
        return f"ResultCursor(error={self._error}, count={self.count()}, offset={self._offset})"

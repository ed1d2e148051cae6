from abc import abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any
import json

from elastic_bridge.clients.ClientInterface import ClientInterface
from elastic_bridge.helper.HelperConfig import HelperConfig
from elastic_bridge.helper.url_helper import build_url
from elastic_bridge.query.QueryNode import QueryNode
from elastic_bridge.query.ResultCursor import ResultCursor

_JSON_HEADERS = {"Content-Type": "application/json"}


class SearchClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "search"

    @abstractmethod
    def get_index(self) -> str | None:
        """
        Returns the comma separated index name(s) queried by this client, or None for all indices.
        """
        pass

    @abstractmethod
    def get_type(self) -> str | None:
        """
        Returns the comma separated document type name(s) queried by this client, or None.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """
        Returns the action name for search requests (e.g. "_search").
        """
        pass

    @abstractmethod
    def _get_endpoint_bulk(self) -> str:
        """
        Returns the action name for bulk requests (e.g. "_bulk").
        """
        pass

    @abstractmethod
    def get_scan_params(self, fetch_size: int, keep_alive: str) -> dict[str, Any]:
        """
        Returns the query-string parameters that open a scroll on a search request.

        Args:
            fetch_size (int): Documents per page.
            keep_alive (str): How long the backend keeps the scroll open between fetches.
        """
        pass

    def build_url(self, action: str) -> str:
        """
        Returns `<server>[/<index>[/<type>]]/<action>` for this client's index and type.
        """
        return build_url(self._get_base_url(), self.get_index(), self.get_type(), action)

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    @staticmethod
    def serialize_query(query: QueryNode | Mapping[str, Any] | str) -> str:
        """
        Returns the JSON text of a query given as a QueryNode, a mapping or pre-serialized text.
        """
        if isinstance(query, str):
            return query
        if isinstance(query, QueryNode):
            return query.to_json()
        return json.dumps(query, separators=(",", ":"))

    @staticmethod
    def serialize_bulk(records: str | Sequence[str]) -> str:
        """
        Returns the newline-delimited bulk body. A string is sent as-is; a
        sequence of pre-formatted lines is joined with newlines and terminated
        with one.
        """
        if isinstance(records, str):
            return records
        return "\n".join(records) + "\n"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def do_search(self, query: QueryNode | Mapping[str, Any] | str, params: dict[str, Any] | None = None) -> ResultCursor:
        """Run a search request.

        Args:
            query: The query document.
            params: Extra query-string parameters.

        Returns:
            ResultCursor: The wrapped response. Check is_error() for HTTP or network failures.
        """
        url = self.build_url(self._get_endpoint_search())
        resp = self.do_transport(url, "GET", params, dict(_JSON_HEADERS), self.serialize_query(query))
        return ResultCursor(resp.body, resp.status_code)

    def do_scan(
        self,
        query: QueryNode | Mapping[str, Any] | str,
        fetch_size: int = 50,
        keep_alive: str = "1m",
        params: dict[str, Any] | None = None,
    ) -> ResultCursor:
        """Open a scan/scroll search over all matching documents.

        The returned cursor fetches further pages through this client while it
        is iterated, so the client must stay booted until iteration ends.

        Args:
            query: The query document.
            fetch_size: Documents per page.
            keep_alive: How long the backend keeps the scroll open between fetches.
            params: Extra query-string parameters.

        Returns:
            ResultCursor: A scrollable cursor over every matching document.
        """
        url = self.build_url(self._get_endpoint_search())
        scan_params = self.get_scan_params(fetch_size, keep_alive)
        scan_params.update(params or {})
        resp = self.do_transport(url, "GET", scan_params, dict(_JSON_HEADERS), self.serialize_query(query))
        cursor = ResultCursor(
            resp.body,
            resp.status_code,
            server_url=self._get_base_url(),
            keep_alive=keep_alive,
            transport=self.do_transport,
        )
        self.logging.debug(
            "Opened scan on %s: %d total hits, scrollable=%s",
            url, cursor.get_total_hits(), cursor.is_scrollable(),
        )
        return cursor

    def do_bulk(self, records: str | Sequence[str]) -> ResultCursor:
        """Send a bulk request.

        Args:
            records: Pre-formatted action/metadata and source lines.

        Returns:
            ResultCursor: The wrapped bulk response.
        """
        url = self.build_url(self._get_endpoint_bulk())
        resp = self.do_transport(url, "PUT", None, dict(_JSON_HEADERS), self.serialize_bulk(records))
        return ResultCursor(resp.body, resp.status_code)

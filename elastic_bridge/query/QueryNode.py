"""QueryNode: an auto-vivifying tree for building search request documents.

Reading an absent field creates an empty child node in place, so deep paths
can be written in one expression:

    q = QueryNode()
    q["query"]["filtered"]["filter"].and_term_filter("status", "open")
    q.sort("created", QueryNode.SORT_DESC)

Every node remembers the parent and field it is stored under. That
back-reference lets a node that was created as an object turn itself into
a list when the caller appends to it:

    q["filter"]["and"].append({"term": {"a": 1}})   # "and" becomes a list
    q["filter"]["and"].append({"term": {"b": 2}})   # plain list.append
"""

import inspect
import json
import logging
from collections.abc import Iterator, Mapping
from datetime import date, datetime
from typing import Any

from elastic_bridge.clients.transport import Transport, send_request
from elastic_bridge.helper.url_helper import DEFAULT_SERVER, build_url
from elastic_bridge.query.ResultCursor import ResultCursor
from elastic_bridge.query.errors import QueryUsageError

logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    """None and "" mean "not supplied" for every optional helper argument."""
    return value is None or (isinstance(value, str) and value == "")


def _cast(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _export(value: Any) -> Any:
    if isinstance(value, QueryNode):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {k: _export(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_export(v) for v in value]
    return value


class QueryNode:
    SORT_ASC = "asc"
    SORT_DESC = "desc"

    # helpers that list_append() may run on a fresh node
    _LIST_OPERATIONS = frozenset({
        "set",
        "term_filter",
        "missing_filter",
        "range_filter",
        "range_facet",
        "terms_facet",
        "date_histogram_facet",
        "stats_facet",
        "query_string",
        "sort",
        "script_sort",
    })

    def __init__(
        self,
        server: str | None = None,
        index: str | list[str] | None = None,
        doc_type: str | list[str] | None = None,
        fields: Mapping[str, Any] | None = None,
    ) -> None:
        """
        Args:
            server: Base URL used by search() and scan().
            index: Index name(s) used by search() and scan().
            doc_type: Document type name(s) used by search() and scan().
            fields: Initial field/value pairs. Nested mappings become child nodes.
        """
        self._fields: dict[str, Any] = {}
        self._parent: QueryNode | None = None
        self._slot: str | None = None

        self._server = server
        self._index = index
        self._type = doc_type

        for name, value in (fields or {}).items():
            self.set(name, value)

    @classmethod
    def new_instance(cls, fields: Mapping[str, Any] | None = None) -> "QueryNode":
        return cls(fields=fields)

    @classmethod
    def and_terms(cls, term_map: Mapping[str, Any]) -> "QueryNode":
        """Build a node whose "and" list holds one term filter per non-blank entry of term_map."""
        node = cls()
        for field, value in term_map.items():
            node.and_term_filter(field, value)
        return node

    @classmethod
    def or_terms(cls, term_map: Mapping[str, Any]) -> "QueryNode":
        """Build a node whose "or" list holds one term filter per non-blank entry of term_map."""
        node = cls()
        for field, value in term_map.items():
            node.or_term_filter(field, value)
        return node

    ##########################################
    ############ CONNECTION INFO #############
    ##########################################

    def set_server(self, url: str) -> "QueryNode":
        self._server = url
        return self

    def set_index(self, index: str | list[str]) -> "QueryNode":
        self._index = index
        return self

    def set_type(self, doc_type: str | list[str]) -> "QueryNode":
        self._type = doc_type
        return self

    ##########################################
    ############ GRAPH OPERATIONS ############
    ##########################################

    def has_parent(self) -> bool:
        return self._parent is not None

    def has(self, name: str) -> bool:
        """True when the field is set to anything but None, including auto-created empty nodes."""
        return self._fields.get(name) is not None

    def field(self, name: str) -> Any:
        """Return the value stored under name, creating an empty child node if the field is absent.

        Args:
            name: Field name.

        Returns:
            Any: The existing value (node, list or scalar) or the newly attached child node.
        """
        if name in self._fields:
            return self._fields[name]
        child = QueryNode()
        self._store(name, child)
        return child

    def set(self, name: str, value: Any) -> "QueryNode":
        """Store value under name and return this node for chaining.

        Mappings are converted to child nodes, lists and tuples to lists with
        their mapping elements converted. A node that is already stored
        somewhere else is moved: it is removed from its previous slot.
        """
        if self._fields.get(name) is value:
            return self
        self._store(name, self._adopt(value))
        return self

    def unset(self, name: str) -> "QueryNode":
        old = self._fields.pop(name, None)
        if isinstance(old, QueryNode) and old._parent is self:
            old._parent = old._slot = None
        return self

    def append(self, value: Any) -> list:
        """Replace this node in its parent with a new list holding value.

        Returns:
            list: The list now stored in the parent. Later appends can go to it directly.

        Raises:
            QueryUsageError: If the node has no parent.
        """
        items = self._become_list()
        items.append(self._adopt(value))
        return items

    def set_at(self, index: int, value: Any) -> list:
        """Replace this node in its parent with a list and store value at index.

        Positions before index are filled with None.

        Raises:
            QueryUsageError: If the node has no parent or index is negative.
        """
        if index < 0:
            raise QueryUsageError(f"List index must not be negative, got {index}.")
        items = self._become_list()
        items.extend([None] * index)
        items.append(self._adopt(value))
        return items

    def append_to(self, list_name: str, value: Any) -> "QueryNode":
        """Append value to the list stored under list_name, starting the list if needed.

        An empty node left behind by auto-creation is replaced by the list.

        Raises:
            QueryUsageError: If list_name holds a scalar.
        """
        current = self._fields.get(list_name)
        if isinstance(current, list):
            current.append(self._adopt(value))
        elif current is None or isinstance(current, QueryNode):
            self.set(list_name, [value])
        else:
            raise QueryUsageError(
                f"Field '{list_name}' holds a {type(current).__name__} and cannot be used as a list.")
        return self

    def list_append(self, list_name: str, operation: str, *args: Any) -> "QueryNode":
        """Run a helper on a fresh node and append the result to list_name.

        `node.list_append("and", "range_filter", "age", 18, None)` appends
        `{"range": {"age": {...}}}` to the "and" list.

        Raises:
            QueryUsageError: If operation is not a list helper or the arguments do not fit it.
        """
        if operation not in self._LIST_OPERATIONS:
            raise QueryUsageError(f"Method QueryNode.{operation} does not exist.")
        method = getattr(QueryNode, operation)
        child = QueryNode()
        try:
            inspect.signature(method).bind(child, *args)
        except TypeError as e:
            raise QueryUsageError(f"Invalid arguments for QueryNode.{operation}: {e}") from e
        return self.append_to(list_name, method(child, *args))

    def keys(self) -> Iterator[str]:
        return iter(list(self._fields))

    def items(self) -> Iterator[tuple[str, Any]]:
        return iter(list(self._fields.items()))

    def _store(self, name: str, value: Any) -> None:
        old = self._fields.get(name)
        if isinstance(old, QueryNode) and old is not value and old._parent is self:
            old._parent = old._slot = None
        if isinstance(value, QueryNode):
            # tell the child who holds it and under which name
            value._parent = self
            value._slot = name
        self._fields[name] = value

    def _child(self, name: str) -> "QueryNode":
        value = self.field(name)
        if not isinstance(value, QueryNode):
            raise QueryUsageError(
                f"Field '{name}' holds a {type(value).__name__} and cannot hold nested fields.")
        return value

    def _detach(self) -> None:
        parent, slot = self._parent, self._slot
        if parent is not None and parent._fields.get(slot) is self:
            del parent._fields[slot]
        self._parent = self._slot = None

    def _adopt(self, value: Any) -> Any:
        if isinstance(value, QueryNode):
            # a node lives in exactly one slot
            value._detach()
            return value
        if isinstance(value, Mapping):
            return QueryNode(fields=value)
        if isinstance(value, (list, tuple)):
            return [self._adopt(v) for v in value]
        return value

    def _become_list(self) -> list:
        parent, slot = self._parent, self._slot
        if parent is None or slot is None:
            raise QueryUsageError("List assignment only available on nodes with a parent.")
        if parent._fields.get(slot) is not self:
            raise QueryUsageError(f"Node is no longer stored under '{slot}' in its parent.")
        items: list = []
        parent._fields[slot] = items
        self._parent = self._slot = None
        return items

    ##########################################
    ############ FILTERS & FACETS ############
    ##########################################

    def term_filter(self, field: str, term: Any) -> "QueryNode":
        """Set `term.<field> = term`; blank terms are ignored."""
        if not _is_blank(term):
            self._child("term").set(field, term)
        return self

    def and_term_filter(self, field: str, term: Any) -> "QueryNode":
        if not _is_blank(term):
            self.list_append("and", "term_filter", field, term)
        return self

    def or_term_filter(self, field: str, term: Any) -> "QueryNode":
        if not _is_blank(term):
            self.list_append("or", "term_filter", field, term)
        return self

    def missing_filter(self, field: str) -> "QueryNode":
        self._child("missing").set("field", field)
        return self

    def range_filter(self, field: str, from_: Any, to: Any, include_lower: bool = True, include_upper: bool = True) -> "QueryNode":
        """Set `range.<field>` to a range clause.

        Args:
            field: Field to restrict.
            from_: Lower bound, omitted when None or "". Dates are rendered as ISO-8601.
            to: Upper bound, omitted when None or "". Dates are rendered as ISO-8601.
            include_lower: Whether the lower bound is inclusive.
            include_upper: Whether the upper bound is inclusive.
        """
        self._child("range")._child(field)._range(from_, to, include_lower, include_upper)
        return self

    def range_facet(self, name: str, field: str, ranges: list[tuple[Any, Any]]) -> "QueryNode":
        """Set `facets.<name>.range.<field>` to one range clause per (low, high) pair.

        Each pair may carry include_lower/include_upper as third and fourth items.
        Nothing is written when ranges is empty.

        Raises:
            QueryUsageError: If an entry does not hold two to four items.
        """
        range_list = []
        for bounds in ranges:
            node = QueryNode()
            try:
                inspect.signature(QueryNode._range).bind(node, *bounds)
            except TypeError as e:
                raise QueryUsageError(f"Invalid range {bounds!r} for facet '{name}': {e}") from e
            range_list.append(node._range(*bounds))
        if range_list:
            self._child("facets")._child(name)._child("range").set(field, range_list)
        return self

    def terms_facet(self, name: str, field: str, size: int | None = None, params: Mapping[str, Any] | None = None) -> "QueryNode":
        """Set `facets.<name>.terms`. Without a size every term is requested (all_terms)."""
        facet = QueryNode().set("field", field)
        if size is None:
            facet.set("all_terms", True)
        else:
            facet.set("size", size)
        for key, val in (params or {}).items():
            facet.set(key, val)
        self._child("facets")._child(name).set("terms", facet)
        return self

    def date_histogram_facet(self, name: str, field: str, interval: str = "hour", params: Mapping[str, Any] | None = None) -> "QueryNode":
        facet = QueryNode().set("field", field).set("interval", interval)
        for key, val in (params or {}).items():
            facet.set(key, val)
        self._child("facets")._child(name).set("date_histogram", facet)
        return self

    def stats_facet(self, name: str, field: str) -> "QueryNode":
        self._child("facets")._child(name)._child("statistical").set("field", field)
        return self

    def query_string(self, query: str | None, field: str | None = None, operator: str | None = None) -> "QueryNode":
        """Replace `query.filtered.query` with a query_string query, or match_all for None, "" and "*"."""
        q = QueryNode()
        if not query or query == "*":
            q.set("match_all", QueryNode())
        else:
            clause = q._child("query_string").set("query", query)
            if field is not None:
                clause.set("default_field", field)
            if operator is not None:
                clause.set("default_operator", operator)
        self._child("query")._child("filtered").set("query", q)
        return self

    def _range(self, from_: Any, to: Any, include_lower: bool = True, include_upper: bool = True) -> "QueryNode":
        if not _is_blank(from_):
            self.set("from", _cast(from_))
        if not _is_blank(to):
            self.set("to", _cast(to))
        self.set("include_lower", include_lower)
        self.set("include_upper", include_upper)
        return self

    ##########################################
    ################ SORTING #################
    ##########################################

    def sort(self, field: str, order: str = SORT_ASC) -> "QueryNode":
        """Append `{<field>: {"order": order}}` to the sort list."""
        clause = QueryNode()
        clause._child(field).set("order", order)
        return self.append_to("sort", clause)

    def script_sort(self, script: str, script_type: str, params: Mapping[str, Any] | None = None, order: str = SORT_ASC) -> "QueryNode":
        clause = QueryNode()
        script_clause = clause._child("_script").set("script", script).set("type", script_type)
        if params:
            script_clause.set("params", params)
        script_clause.set("order", order)
        return self.append_to("sort", clause)

    def unsorted(self) -> "QueryNode":
        return self.unset("sort")

    ##########################################
    ############# SERIALISATION ##############
    ##########################################

    def to_dict(self) -> dict[str, Any]:
        return {name: _export(value) for name, value in self._fields.items()}

    def to_json(self) -> str:
        """Serialise the tree to compact JSON, fields in insertion order."""
        return json.dumps(self.to_dict(), separators=(",", ":"), default=_json_default)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def search(self, transport: Transport | None = None, params: dict[str, Any] | None = None) -> ResultCursor:
        """Run this document as a search against the node's server/index/type.

        Args:
            transport: Callable performing the HTTP exchange. Defaults to a one-shot send_request.
            params: Extra query-string parameters.

        Returns:
            ResultCursor: The wrapped response. HTTP and network failures show up as is_error().
        """
        send = transport or send_request
        url = build_url(self._server, self._index, self._type, "_search")
        logger.debug("Searching %s", url)
        resp = send(url, "GET", params, {"Content-Type": "application/json"}, self.to_json())
        return ResultCursor(resp.body, resp.status_code)

    def scan(self, fetch_size: int = 50, keep_alive: str = "1m", transport: Transport | None = None, params: dict[str, Any] | None = None) -> ResultCursor:
        """Start a scan/scroll search. Iterating the returned cursor fetches further pages on demand.

        Args:
            fetch_size: Documents per shard and page.
            keep_alive: How long the service keeps the scroll open between fetches.
            transport: Callable performing the HTTP exchanges, kept by the cursor for continuation fetches.
            params: Extra query-string parameters.
        """
        send = transport or send_request
        url = build_url(self._server, self._index, self._type, "_search")
        query_params = {"search_type": "scan", "scroll": keep_alive, "size": fetch_size}
        query_params.update(params or {})
        logger.debug("Scanning %s (size=%s, scroll=%s)", url, fetch_size, keep_alive)
        resp = send(url, "GET", query_params, {"Content-Type": "application/json"}, self.to_json())
        return ResultCursor(
            resp.body,
            resp.status_code,
            server_url=self._server or DEFAULT_SERVER,
            keep_alive=keep_alive,
            transport=send,
        )

    ##########################################
    ########### CONTAINER PROTOCOL ###########
    ##########################################

    def __getitem__(self, name: str) -> Any:
        if not isinstance(name, str):
            raise QueryUsageError(f"QueryNode fields are addressed by name, got {name!r}.")
        return self.field(name)

    def __setitem__(self, key: str | int, value: Any) -> None:
        if isinstance(key, bool) or not isinstance(key, (str, int)):
            raise QueryUsageError(f"Unsupported key {key!r}.")
        if isinstance(key, int):
            self.set_at(key, value)
        else:
            self.set(key, value)

    def __delitem__(self, name: str) -> None:
        self.unset(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (QueryNode, Mapping)):
            return self.to_dict() == _export(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"QueryNode({self.to_json()})"

"""URL building shared by the search clients and QueryNode.search()/scan()."""

from collections.abc import Iterable
from urllib.parse import quote_plus

DEFAULT_SERVER = "http://localhost:9200"


def join_names(value: str | Iterable[str] | None) -> str | None:
    """Normalise an index or type selector to the comma separated form the service expects.

    Args:
        value: A single name, a collection of names, or None.

    Returns:
        str | None: Names joined with "," (empty entries dropped), the string itself, or None.
    """
    if value is None or isinstance(value, str):
        return value
    return ",".join(str(v) for v in value if v)


def build_url(server: str | None, index: str | Iterable[str] | None, doc_type: str | Iterable[str] | None, action: str) -> str:
    """Build `<server>[/<index>[/<type>]]/<action>` with every path segment url-encoded.

    The type segment is only used when an index is set.

    Args:
        server: Base URL including scheme and port. Falls back to DEFAULT_SERVER.
        index: Index name(s).
        doc_type: Document type name(s).
        action: Service action, e.g. "_search" or "_bulk".

    Returns:
        str: The request URL.
    """
    parts = [(server or DEFAULT_SERVER).rstrip("/")]
    index = join_names(index)
    if index:
        parts.append(quote_plus(index, safe=""))
        doc_type = join_names(doc_type)
        if doc_type:
            parts.append(quote_plus(doc_type, safe=""))
    parts.append(quote_plus(action, safe=""))
    return "/".join(parts)

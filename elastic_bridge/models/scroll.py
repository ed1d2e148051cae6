from pydantic import BaseModel


class ScrollContext(BaseModel):
    """Everything a ResultCursor needs to request the next page of a scroll.

    Attributes:
        scroll_url: Full URL of the scroll endpoint (e.g. "http://localhost:9200/_search/scroll").
        keep_alive: How long the service keeps the cursor open between fetches (e.g. "1m").
    """

    scroll_url: str
    keep_alive: str = "1m"

    @classmethod
    def for_server(cls, server_url: str, keep_alive: str | None = None) -> "ScrollContext":
        return cls(
            scroll_url=f"{server_url.rstrip('/')}/_search/scroll",
            keep_alive=keep_alive or "1m",
        )

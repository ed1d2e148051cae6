"""Scan runner entry point.

Streams every document matching a query out of the configured index as
JSON lines on stdout, following the scroll until it is exhausted.

Usage:
    python -m elastic_bridge.scan_runner '{"query": {"match_all": {}}}' --fetch-size 100
"""

import argparse
import json
import sys

from elastic_bridge.clients.search.SearchClientManager import SearchClientManager
from elastic_bridge.helper.HelperConfig import HelperConfig
from elastic_bridge.logging.logging_setup import setup_logging
from elastic_bridge.query.QueryNode import QueryNode


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dump all documents matching a query as JSON lines.")
    parser.add_argument("query", nargs="?", default=None, help="Query document as JSON (default: match_all)")
    parser.add_argument("--fetch-size", type=int, default=50, help="Documents per scroll page")
    parser.add_argument("--keep-alive", default="1m", help="Scroll keep-alive between page fetches")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the scan and return the process exit code."""
    logger = setup_logging()
    args = _parse_args(argv)
    config = HelperConfig(logger=logger)

    if args.query:
        try:
            fields = json.loads(args.query)
        except ValueError as e:
            logger.error("Query is not valid JSON: %s", e)
            return 2
        if not isinstance(fields, dict):
            logger.error("Query must be a JSON object, got %s", type(fields).__name__)
            return 2
        query = QueryNode(fields=fields)
    else:
        query = QueryNode()
        query["query"]["match_all"] = {}

    client = SearchClientManager(helper_config=config).get_client()
    with client:
        cursor = client.do_scan(query, fetch_size=args.fetch_size, keep_alive=args.keep_alive)
        if cursor.is_error():
            logger.error("Scan request failed: %s", cursor.to_json())
            return 1

        logger.info("Scanning %d documents from %s index %s", cursor.get_total_hits(), client.get_engine_name(), client.get_index() or "*", color="cyan")
        written = 0
        for document in cursor:
            sys.stdout.write(json.dumps(document) + "\n")
            written += 1
        if cursor.is_error():
            logger.error("Scroll stopped after %d documents: %s", written, cursor.to_json())
            return 1

    logger.info("Wrote %d documents", written, color="green")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Server bootstrap for the document cache MCP service.

Creates the FastMCP instance and the cached database, registers the
document and cache tools, and starts the MCP server (stdio transport).
"""

import logging
import sys

from mcp.server.fastmcp import FastMCP

from config import (
    CACHE_POLICY,
    CACHE_SHARDS,
    CACHE_SWEEP_INTERVAL_MS,
    CACHE_TIMEOUT_MS,
    DATA_ROOT,
    LOG_LEVEL,
)
from documents.database import Database

from tools.cache_tools import register as register_cache_tools
from tools.documents import register as register_document_tools

mcp = FastMCP("doccache-mcp")

database = Database(
    DATA_ROOT,
    cache_timeout_ms=CACHE_TIMEOUT_MS,
    policy=CACHE_POLICY,
    sweep_interval_ms=CACHE_SWEEP_INTERVAL_MS,
    shards=CACHE_SHARDS,
)


def configure_logging() -> None:
    # stdout carries the stdio transport
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def register_all() -> None:
    register_document_tools(mcp, database=database)
    register_cache_tools(mcp, database=database)


register_all()


def main() -> None:
    configure_logging()
    try:
        mcp.run(transport="stdio")
    finally:
        database.close()


if __name__ == "__main__":
    main()

from __future__ import annotations

import logging
import os

import structlog
from mcp.server.fastmcp import FastMCP

from porcelain_git_mcp.tools import repo_info, repo_status

mcp = FastMCP("porcelain-git-mcp")

LOG_LEVEL_ENV = "PORCELAIN_GIT_MCP_LOG_LEVEL"


@mcp.tool()
def repo_info_tool(root: str = ".") -> dict:
    return repo_info(root=root)


@mcp.tool()
def repo_status_tool(root: str = ".", max_entries: int = 200) -> dict:
    return repo_status(root=root, max_entries=max_entries)


def configure_logging(level: str | None = None) -> None:
    """
    Route structlog through stdlib logging on stderr; stdout carries the
    MCP stdio transport and must stay clean.
    """
    level = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
        )
    )
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def main() -> None:
    configure_logging()
    mcp.run()


if __name__ == "__main__":
    main()

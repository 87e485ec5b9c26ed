"""Stderr logging for the lsq CLI and the MCP server.

Modules log through `logging.getLogger(__name__)`; everything under the
logseq_tools package is routed to one stderr handler. Set
LOGSEQ_TOOLS_LOG_LEVEL (DEBUG, INFO, WARNING, ERROR) to change verbosity.
stdout is never used: over stdio it carries the MCP protocol.
"""

import logging
import os
import sys

PACKAGE_LOGGER = "logseq_tools"
LOG_LEVEL_ENV = "LOGSEQ_TOOLS_LOG_LEVEL"


def configure_logging() -> None:
    """Attach the stderr handler to the package logger.

    Called from server.main and the CLI group. The handler is attached at
    most once per process.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.handlers:
        return

    level = getattr(logging, os.environ.get(LOG_LEVEL_ENV, "INFO").upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))

    package_logger.setLevel(level)
    package_logger.addHandler(handler)
    # Handled here; the root logger would print it again
    package_logger.propagate = False

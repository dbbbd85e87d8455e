"""Main entry point: run the MCP server selected by MCP_MODE."""

from __future__ import annotations

import json
import sys

from .config.runtime import get_settings
from .interface.errors import handle_error
from .interface.mcp.server import run_server
from .observability import configure_logging


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        run_server(settings.mcp_mode.value, settings)
    except PermissionError as exc:
        response = handle_error(exc, {"mode": settings.mcp_mode.value}, locale=settings.locale)
        print(json.dumps(response.body, ensure_ascii=False), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""github-mcp-server MCP Server entry point.

Run:
  python -m github_mcp_server                       # start server (stdio)
  python -m github_mcp_server --read-only           # expose read-only tools only
  python -m github_mcp_server --test                # run lightweight self-tests then exit
  python -m github_mcp_server --export-translations # write tool descriptions to JSON then exit
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from github_mcp_server.config import apply_cli_overrides, load_config_from_env
from github_mcp_server.errors import SafeError
from github_mcp_server.server import configure_logging, run_server, test_server
from github_mcp_server.tools import build_registry
from github_mcp_server.translations import export_translations, load_translations

logger = logging.getLogger("github_mcp_server")


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(prog="github-mcp-server", add_help=True)
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Restrict the server to read-only operations (env: GITHUB_MCP_READ_ONLY).",
    )
    parser.add_argument(
        "--gh-host",
        default=None,
        help="GitHub Enterprise hostname, e.g. https://github.example.com (env: GH_HOST).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Absolute path of a DEBUG log file (env: GITHUB_MCP_LOG_FILE).",
    )
    parser.add_argument(
        "--enable-command-logging",
        action="store_true",
        help="Include redacted tool arguments in command log events (env: GITHUB_MCP_ENABLE_COMMAND_LOGGING).",
    )
    parser.add_argument(
        "--translations-file",
        type=Path,
        default=None,
        help="JSON file of tool description overrides (default: github-mcp-server-config.json).",
    )
    parser.add_argument(
        "--export-translations",
        action="store_true",
        help="Write every tool description key and its current text to the translations file, then exit.",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Run built-in server self tests (tool & resource listing) then exit.",
    )
    return parser.parse_args(argv)


def main() -> None:
    """CLI dispatcher for the MCP server."""
    args = parse_args(sys.argv[1:])
    if args.test:
        configure_logging()
        asyncio.run(test_server())
        return

    try:
        translations = load_translations(args.translations_file)
        if args.export_translations:
            configure_logging()
            build_registry(read_only=False, translate=translations)
            export_translations(translations, args.translations_file)
            return
        config = apply_cli_overrides(
            load_config_from_env(),
            read_only=args.read_only,
            gh_host=args.gh_host,
            log_file=args.log_file,
            enable_command_logging=args.enable_command_logging,
        )
    except SafeError as exc:
        configure_logging()
        logger.error("Startup configuration error: %s", exc.message)
        sys.exit(1)

    configure_logging(config.log_file)
    try:
        asyncio.run(run_server(config, translations))
    except KeyboardInterrupt:
        print("\nServer stopped by user", file=sys.stderr)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        print(f"Server error: {exc}", file=sys.stderr)
        raise


if __name__ == "__main__":
    main()

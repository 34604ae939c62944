"""FastMCP server factory and the ``clipsense-mcp`` console entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import __version__, auth
from .auth import API_KEY_ENV, resolve_api_key, save_api_key
from .client import ClipSenseClient
from .config import ServerConfig, get_config
from .errors import ErrorCategory, Failure, render_failure
from .tools.analyze import analyze_server

logger = logging.getLogger(__name__)


def create_app(api_key: str, config: ServerConfig | None = None) -> FastMCP:
    """Build the server for an already-resolved API key.

    The lifespan owns the single :class:`ClipSenseClient`; tools read it
    from the lifespan context.
    """
    cfg = config or get_config()

    @asynccontextmanager
    async def _lifespan(server: FastMCP):
        """Create the API client on startup and close it on shutdown."""
        client = ClipSenseClient.from_config(api_key, cfg)
        try:
            yield {"client": client, "config": cfg}
        finally:
            await client.aclose()
            logger.info("Lifespan shutdown: closed ClipSense client")

    app = FastMCP(
        "clipsense",
        version=__version__,
        instructions=(
            "Mobile bug video analysis. Uploads a local screen recording of an "
            "app bug to ClipSense and returns an AI diagnosis with suggested fixes."
        ),
        lifespan=_lifespan,
    )
    app.mount(analyze_server)
    return app


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="clipsense-mcp",
        description="ClipSense MCP server (stdio). Run without arguments to serve.",
    )
    sub = parser.add_subparsers(dest="command")
    configure = sub.add_parser("configure", help="Save an API key to ~/.clipsense/config.json")
    configure.add_argument("--api-key", required=True, help="ClipSense API key")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Entry-point for ``clipsense-mcp`` console script."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "configure":
        path = save_api_key(args.api_key.strip())
        print(f"API key saved to {path}")
        return

    api_key = resolve_api_key()
    if not api_key:
        logger.error(
            "No API key found in %s or %s",
            API_KEY_ENV,
            auth.CONFIG_FILE,
        )
        print(
            "❌ " + render_failure(Failure(category=ErrorCategory.CREDENTIAL_MISSING)),
            file=sys.stderr,
        )
        sys.exit(1)

    create_app(api_key).run()


if __name__ == "__main__":
    main()

"""Command-line interface for shellgate.

Provides the main entry point for running the telnet daemon and,
optionally, its admin HTTP API.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="shellgate",
        description="Telnet gateway to a local interactive shell",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/shellgate.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the telnet daemon")
    serve_parser.add_argument("--host", type=str, default=None, help="Override listen address")
    serve_parser.add_argument("--port", type=int, default=None, help="Override listen port")
    serve_parser.add_argument(
        "--admin", action="store_true",
        help="Also serve the admin HTTP API",
    )

    return parser.parse_args(argv)


async def _serve(settings) -> None:
    """Run the daemon (and admin API) until interrupted."""
    from shellgate.server.daemon import TelnetDaemon

    daemon = TelnetDaemon(settings)
    await daemon.start()

    admin_server = None
    admin_task = None
    if settings.admin.enabled:
        import uvicorn
        from shellgate.server.admin import create_app

        admin_server = uvicorn.Server(
            uvicorn.Config(
                create_app(daemon),
                host=settings.admin.host,
                port=settings.admin.port,
                log_level=settings.logging.level.lower(),
            )
        )
        admin_task = asyncio.create_task(admin_server.serve(), name="admin-api")
        logger.info("Admin API on http://%s:%d", settings.admin.host, settings.admin.port)

    try:
        await daemon.serve_forever()
    finally:
        if admin_server is not None:
            admin_server.should_exit = True
        if admin_task is not None:
            await admin_task
        await daemon.stop()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the shellgate CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from shellgate.config.settings import load_settings
    from shellgate.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        if args.host:
            settings.server.host = args.host
        if args.port:
            settings.server.port = args.port
        if args.admin:
            settings.admin.enabled = True
        logger.info("Starting telnet daemon")
        try:
            asyncio.run(_serve(settings))
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()

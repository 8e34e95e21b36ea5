"""Command-line interface for termbridge.

Provides the main entry point for serving the terminal bridge and for
running one-shot commands from the shell.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="termbridge",
        description="Browser terminal backend for a web IDE",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/termbridge.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the terminal bridge server")
    serve_parser.add_argument("--host", type=str, default=None, help="Override server.host")
    serve_parser.add_argument("--port", type=int, default=None, help="Override server.port")
    serve_parser.add_argument(
        "--project-root", type=str, default=None,
        help="Override sandbox.project_root",
    )

    exec_parser = subparsers.add_parser("exec", help="Run one command and print its output")
    exec_parser.add_argument("command_line", type=str, help="Command line to run")
    exec_parser.add_argument(
        "--timeout", type=float, default=None,
        help="Seconds before the command is killed (default: execution.timeout)",
    )

    return parser.parse_args(argv)


async def _exec(settings, args) -> int:
    """Run a one-shot command and mirror its output."""
    from termbridge.execution.oneshot import run_command

    timeout = args.timeout if args.timeout is not None else settings.execution.timeout
    result = await run_command(
        args.command_line,
        cwd=settings.execution.working_directory,
        timeout=timeout,
        shell_command=settings.terminal.shell_command,
    )
    if result.output:
        sys.stdout.write(result.output)
    if result.error and not result.success:
        sys.stderr.write(result.error if result.error.endswith("\n") else result.error + "\n")
    if result.exit_code is None:
        return 127
    return result.exit_code if not result.timed_out else 124


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the termbridge CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from termbridge.config.settings import load_settings
    from termbridge.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        import uvicorn
        from termbridge.server import create_asgi_app

        if args.host:
            settings.server.host = args.host
        if args.port:
            settings.server.port = args.port
        if args.project_root:
            settings.sandbox.project_root = args.project_root
        logger.info("Starting termbridge on %s:%d", settings.server.host, settings.server.port)
        uvicorn.run(
            create_asgi_app(settings),
            host=settings.server.host,
            port=settings.server.port,
        )

    elif args.command == "exec":
        sys.exit(asyncio.run(_exec(settings, args)))


if __name__ == "__main__":
    main()

"""Codex Registry CLI.

Usage:
    codex-registry serve                  # Start the API on HOST:PORT
    codex-registry serve --port 8000 --reload
    codex-registry status                 # Show effective configuration
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    from codex_registry.config import settings

    parser = argparse.ArgumentParser(
        prog="codex-registry",
        description="Codex Registry — record visibility and user events",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="command")

    srv = subparsers.add_parser("serve", help="Start the HTTP/WebSocket API")
    srv.add_argument("--host", default=settings.HOST)
    srv.add_argument("--port", type=int, default=settings.PORT)
    srv.add_argument("--reload", action="store_true", help="Reload on code changes")

    subparsers.add_parser("status", help="Show effective configuration")

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else settings.LOG_LEVEL
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "serve":
            _cmd_serve(args)
        elif args.command == "status":
            _cmd_status()
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(130)
    except Exception as exc:
        logger.error("Error: %s", exc)
        if args.verbose:
            raise
        sys.exit(1)


def _cmd_serve(args: argparse.Namespace) -> None:
    """Run the API with uvicorn."""
    import uvicorn

    logger.info("Serving on %s:%d", args.host, args.port)
    uvicorn.run(
        "codex_registry.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="debug" if args.verbose else "info",
    )


def _cmd_status() -> None:
    from codex_registry import __version__
    from codex_registry.config import settings

    print(f"Codex Registry v{__version__}")
    print(json.dumps(settings.model_dump(), indent=2, default=str))


if __name__ == "__main__":
    main()

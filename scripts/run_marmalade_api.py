"""Launch the Marmalade registry API under uvicorn."""

from __future__ import annotations

import argparse
import errno
import logging
import socket
import sys
from pathlib import Path
from typing import Final

import uvicorn

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from marmalade_api.config.settings import get_api_settings  # noqa: E402

LOG_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVELS: Final[tuple[str, ...]] = ("critical", "error", "warning", "info", "debug", "trace")

LOGGER = logging.getLogger("marmalade_api.runner")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the Marmalade package registry.")
    parser.add_argument("--host", help="Bind address (default: MARMALADE_API_HOST).")
    parser.add_argument("--port", type=int, help="Bind port (default: MARMALADE_API_PORT).")
    parser.add_argument("--reload", action="store_true", help="Restart on source changes.")
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="Registry and uvicorn log level.")
    parser.add_argument(
        "--migrate-only",
        action="store_true",
        help="Apply database migrations and exit without serving.",
    )
    return parser.parse_args(argv)


def ensure_port_available(host: str, port: int) -> None:
    """Exit early with a readable message when ``host:port`` cannot be bound."""

    try:
        candidates = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror as exc:
        raise SystemExit(f"Cannot resolve {host!r}: {exc}") from exc

    failure: OSError | None = None
    for family, socktype, proto, _, address in candidates:
        with socket.socket(family, socktype, proto) as probe:
            probe.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                probe.bind(address)
            except OSError as exc:
                if exc.errno == errno.EADDRINUSE:
                    raise SystemExit(
                        f"{host}:{port} is already in use; pass --port or set MARMALADE_API_PORT."
                    ) from exc
                failure = exc
            else:
                return
    raise SystemExit(f"Cannot bind {host}:{port}: {failure}")


def configure_logging(log_level: str) -> None:
    level = logging.DEBUG if log_level == "trace" else getattr(logging, log_level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    settings = get_api_settings()
    log_level = (args.log_level or settings.log_level).lower()
    configure_logging(log_level)

    if args.migrate_only:
        from marmalade_api.db.migrations import upgrade_database

        upgrade_database()
        LOGGER.info("Database is at the latest revision")
        return

    host = args.host or settings.host
    port = args.port or settings.port
    ensure_port_available(host, port)
    LOGGER.info("Serving Marmalade on http://%s:%s", host, port)

    uvicorn.run(
        "marmalade_api.app:app",
        host=host,
        port=port,
        reload=args.reload or settings.reload,
        log_level="debug" if log_level == "trace" else log_level,
        log_config=None,
    )


if __name__ == "__main__":
    main()

"""Command-line entry point that wires together and runs the shortener service."""

from __future__ import annotations

import logging
import signal
import sys
import threading
from collections.abc import Sequence

from flask import Flask

from urlshortener.config import Config, load, parse_flags, read_env
from urlshortener.handler import Handler
from urlshortener.service import URLService
from urlshortener.storage import Storage
from urlshortener.transport import Transport

BUILD_VERSION = "N/A"
BUILD_DATE = "N/A"
BUILD_COMMIT = "N/A"

STORAGE_EXTENSION = "urlshortener.storage"
_LOGGER_NAME = "urlshortener"


class _StdoutHandler(logging.StreamHandler):
    """Stream handler that always writes to the current sys.stdout."""

    def emit(self, record: logging.LogRecord) -> None:
        self.stream = sys.stdout
        super().emit(record)


def new_logger() -> logging.Logger:
    """Return the service logger, writing text records to standard output."""
    log = logging.getLogger(_LOGGER_NAME)
    if not any(isinstance(handler, _StdoutHandler) for handler in log.handlers):
        handler = _StdoutHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("time=%(asctime)s level=%(levelname)s msg=%(message)s")
        )
        log.addHandler(handler)
    log.setLevel(logging.INFO)
    log.propagate = False
    return log


def build_app(cfg: Config) -> Flask:
    """Open storage and return the web application serving it.

    The storage is kept in ``app.extensions["urlshortener.storage"]`` so the
    caller can close it.
    """
    log = new_logger()
    storage = Storage(cfg)
    try:
        handler = Handler(URLService(storage, log), log)
        app = Transport(cfg, handler, log).create_app()
    except BaseException:
        storage.close()
        raise
    app.extensions[STORAGE_EXTENSION] = storage
    return app


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid server address {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


def _install_signal_handlers() -> dict[int, object]:
    """Make SIGTERM and SIGQUIT interrupt the server like SIGINT does."""
    if threading.current_thread() is not threading.main_thread():
        return {}
    previous = {}
    for name in ("SIGTERM", "SIGQUIT"):
        signum = getattr(signal, name, None)
        if signum is not None:
            previous[signum] = signal.signal(signum, signal.default_int_handler)
    return previous


def _restore_signal_handlers(previous: dict[int, object]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the shortener service until interrupted; return the exit status."""
    print(f"Build version: {BUILD_VERSION}\nBuild date: {BUILD_DATE}\nBuild commit: {BUILD_COMMIT}")

    cfg = parse_flags(argv)
    log = new_logger()
    try:
        load(cfg)
    except (OSError, ValueError) as exc:
        log.error("Error reading configuration: %s", exc)
        try:
            read_env(cfg)
        except ValueError as env_exc:
            log.error("Error reading environment: %s", env_exc)
            return 1

    try:
        host, port = _split_address(cfg.server_addr)
    except ValueError as exc:
        log.error("%s", exc)
        return 1

    try:
        app = build_app(cfg)
    except Exception as exc:
        log.error("Error creating new storage: %s", exc)
        return 1
    storage = app.extensions[STORAGE_EXTENSION]

    ssl_context = ("cert.pem", "key.pem") if cfg.https else None
    previous = _install_signal_handlers()
    try:
        app.run(host=host, port=port, ssl_context=ssl_context)
    except KeyboardInterrupt:
        log.debug("Interrupted")
    finally:
        _restore_signal_handlers(previous)
        storage.close()
    log.info("Received shutdown signal, shutting down gracefully...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
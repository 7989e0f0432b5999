"""Register center that tracks live cache nodes by their periodic announcements."""

from __future__ import annotations

import argparse
import logging
import socketserver
import threading
import time
from http import HTTPStatus
from typing import Callable, Iterable, Optional, Sequence
from wsgiref.simple_server import WSGIServer, make_server

logger = logging.getLogger(__name__)

MAX_BODY = 1024
NODE_TIMEOUT = 10.0
CHECK_INTERVAL = 1.0
REGISTER_PATH = "/register"
PORT = 8000


class _ThreadingWSGIServer(socketserver.ThreadingMixIn, WSGIServer):
    daemon_threads = True


class RegisterCenter:
    """Records the last time each node announced itself and drops silent nodes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._nodes: dict[str, float] = {}

    @property
    def nodes(self) -> dict[str, float]:
        """Snapshot of node address to last announcement time (monotonic seconds)."""
        with self._lock:
            return dict(self._nodes)

    def register(self, body: bytes) -> str:
        """Record the node address in ``body`` (first 1024 bytes); ValueError if empty."""
        raw = bytes(body[:MAX_BODY])
        if not raw:
            raise ValueError("empty node address")
        addr = raw.decode("utf-8", errors="replace")
        logger.info("receive request addr : %s", addr)
        with self._lock:
            self._nodes[addr] = time.monotonic()
        return addr

    def prune(self, now: Optional[float] = None) -> list[str]:
        """Drop nodes silent for more than the timeout; return their addresses."""
        current = time.monotonic() if now is None else now
        with self._lock:
            stale = [addr for addr, seen in self._nodes.items() if current - seen > NODE_TIMEOUT]
            for addr in stale:
                seen = self._nodes.pop(addr)
                logger.error("nodes offline : %s, last kick time: %s", addr, seen)
        return stale

    def check_nodes_health(self, stop_event: Optional[threading.Event] = None) -> None:
        """Prune stale nodes repeatedly until ``stop_event`` is set."""
        stop = stop_event if stop_event is not None else threading.Event()
        while True:
            self.prune()
            if stop.wait(CHECK_INTERVAL):
                return

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        if environ.get("PATH_INFO", "") != REGISTER_PATH:
            return _reply(start_response, HTTPStatus.NOT_FOUND, b"404 page not found\n")
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        try:
            body = environ["wsgi.input"].read(min(max(length, 0), MAX_BODY)) if length > 0 else b""
        except OSError:
            logger.error("read request body error")
            return _reply(start_response, HTTPStatus.BAD_REQUEST, b"")
        try:
            self.register(body)
        except ValueError:
            return _reply(start_response, HTTPStatus.BAD_REQUEST, b"")
        return _reply(start_response, HTTPStatus.OK, b"")


def _reply(start_response: Callable, status: HTTPStatus, body: bytes) -> list[bytes]:
    start_response(
        f"{status.value} {status.phrase}",
        [("Content-Type", "text/plain; charset=utf-8"), ("Content-Length", str(len(body)))],
    )
    return [body]


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run the cache node register center.")
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    center = RegisterCenter()
    logger.info("Running at port:%d...", PORT)
    threading.Thread(target=center.check_nodes_health, name="health-check", daemon=True).start()
    try:
        with make_server("", PORT, center, server_class=_ThreadingWSGIServer) as httpd:
            httpd.serve_forever()
    except OSError as exc:
        logger.critical("start server error: %s", exc)
        raise SystemExit(f"start server error: {exc}") from exc


if __name__ == "__main__":
    main()
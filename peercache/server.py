"""Command that runs a cache node and, optionally, the public API front end."""

from __future__ import annotations

import argparse
import logging
import socketserver
import threading
from http import HTTPStatus
from typing import Callable, Iterable, Optional, Sequence
from urllib.parse import parse_qs, urlsplit
from wsgiref.simple_server import WSGIServer, make_server

import yaml

from .config import Config, load_config
from .group import get_group
from .http_pool import HTTPPool
from .loaders import run_pretask

logger = logging.getLogger(__name__)

API_ADDR = "http://localhost:9999"
NODE_ADDRS = {
    8001: "http://localhost:8001",
    8002: "http://localhost:8002",
    8003: "http://localhost:8003",
}
DEFAULT_CONFIG_PATH = "./config.yaml"

WSGIApp = Callable[[dict, Callable], Iterable[bytes]]


class _ThreadingWSGIServer(socketserver.ThreadingMixIn, WSGIServer):
    daemon_threads = True


def _serve(addr: str, app: WSGIApp) -> None:
    parts = urlsplit(addr)
    if parts.port is None:
        raise ValueError(f"address has no port: {addr}")
    with make_server(parts.hostname or "", parts.port, app, server_class=_ThreadingWSGIServer) as httpd:
        httpd.serve_forever()


def _error_text(exc: BaseException) -> str:
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc)


def _respond(start_response: Callable, status: int, content_type: str, body: bytes) -> list[bytes]:
    code = HTTPStatus(status)
    start_response(
        f"{code.value} {code.phrase}",
        [("Content-Type", content_type), ("Content-Length", str(len(body)))],
    )
    return [body]


def _text(start_response: Callable, status: int, message: str) -> list[bytes]:
    return _respond(start_response, status, "text/plain; charset=utf-8", f"{message}\n".encode("utf-8"))


def make_api_app(config: Config) -> WSGIApp:
    """Return the WSGI application answering ``/api?key=...&group=...``.

    An empty or missing ``group`` falls back to the configured default group.
    """

    def app(environ: dict, start_response: Callable) -> Iterable[bytes]:
        if environ.get("PATH_INFO", "") != "/api":
            return _text(start_response, HTTPStatus.NOT_FOUND, "404 page not found")
        query = parse_qs(environ.get("QUERY_STRING", ""), keep_blank_values=True)
        key = query.get("key", [""])[0]
        group_name = query.get("group", [""])[0] or config.server.default_group
        group = get_group(group_name)
        if group is None:
            return _text(start_response, HTTPStatus.NOT_FOUND, f"no such group: {group_name}")
        try:
            view = group.get(key)
        except Exception as exc:
            return _text(start_response, HTTPStatus.INTERNAL_SERVER_ERROR, _error_text(exc))
        return _respond(start_response, HTTPStatus.OK, "application/octet-stream", view.byte_slice())

    return app


def start_cache_server(addr: str, addrs: Sequence[str], config: Config) -> None:
    """Build this node's pool, preload its groups and serve peer requests forever."""
    pool = HTTPPool(addr, config)
    pool.set(config, *addrs)
    for group in run_pretask(config, pool):
        group.register_peers(pool)
    logger.info("cache node is running at %s", addr)
    _serve(addr, pool)


def start_api_server(api_addr: str, config: Config) -> None:
    """Serve the public API forever."""
    logger.info("frontend server is running at %s", api_addr)
    _serve(api_addr, make_api_app(config))


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run a distributed cache node.")
    parser.add_argument("--port", type=int, default=8001, choices=sorted(NODE_ADDRS), help="cache server port")
    parser.add_argument("--api", action="store_true", help="also start the API server")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="config path")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    try:
        config = load_config(args.config)
    except (OSError, yaml.YAMLError, ValueError) as exc:
        logger.critical("load config error, %s", exc)
        raise SystemExit(f"load config error, {exc}") from exc

    addrs = sorted(NODE_ADDRS.values())
    if args.api:
        threading.Thread(
            target=start_api_server, args=(API_ADDR, config), name="api-server", daemon=True
        ).start()
    start_cache_server(NODE_ADDRS[args.port], addrs, config)


if __name__ == "__main__":
    main()
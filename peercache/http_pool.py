"""HTTP transport between cache nodes: a pool that serves keys and routes them to peers."""

from __future__ import annotations

import logging
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional
from urllib.parse import quote_plus

from .consistenthash import HashRing
from .group import get_group

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)

DEFAULT_BASE_PATH = "/_gocache/"
DEFAULT_REPLICAS = 50
REGISTER_INTERVAL = 5.0

# Requests between nodes go straight to the peer, never through a proxy.
_opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))


class PeerRequestError(Exception):
    """A peer answered a value request with a non-success status."""


class RegistrationError(Exception):
    """A node could not announce itself to the register center."""


@dataclass(frozen=True)
class Response:
    """Outcome of serving one request."""

    status: int
    content_type: str
    body: bytes


def _error(status: int, message: str) -> Response:
    return Response(status, "text/plain; charset=utf-8", f"{message}\n".encode("utf-8"))


def _error_text(exc: BaseException) -> str:
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc)


class HTTPGetter:
    """Client fetching values of a group from one remote node."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url

    def get(self, group: str, key: str) -> bytes:
        """Return the bytes the remote node holds for ``key`` in ``group``."""
        url = f"{self.base_url}{quote_plus(group, safe='')}/{quote_plus(key, safe='')}"
        try:
            with _opener.open(url) as response:
                return response.read()
        except urllib.error.HTTPError as exc:
            exc.close()
            raise PeerRequestError(f"server returned: {exc.code} {exc.reason}") from exc

    def __repr__(self) -> str:
        return f"HTTPGetter({self.base_url!r})"


class HTTPPool:
    """Serves this node's groups over HTTP and picks the node owning each key."""

    def __init__(
        self,
        self_addr: str,
        config: Optional["Config"] = None,
        auto_register: bool = True,
    ) -> None:
        server = config.server if config is not None else None
        self.self_addr = self_addr
        self.base_path = server.base_path if server is not None and server.base_path else DEFAULT_BASE_PATH
        self.register_url = server.register_center if server is not None else ""
        self._lock = threading.Lock()
        self._ring: Optional[HashRing] = None
        self._getters: dict[str, HTTPGetter] = {}
        self._register_thread: Optional[threading.Thread] = None
        if auto_register and config is not None and self.register_url:
            self._register_thread = threading.Thread(
                target=_run_registration,
                args=(self_addr, config),
                name=f"register-{self_addr}",
                daemon=True,
            )
            self._register_thread.start()

    def _log(self, fmt: str, *args: Any) -> None:
        logger.info("[Server %s] %s", self.self_addr, fmt % args)

    def set(self, config: Optional["Config"] = None, *args: str) -> None:
        """Replace the set of known nodes with ``args``."""
        replicas = config.server.replicas if config is not None else DEFAULT_REPLICAS
        ring = HashRing(replicas)
        ring.add(*args)
        getters = {peer: HTTPGetter(peer + self.base_path) for peer in args}
        with self._lock:
            self._ring = ring
            self._getters = getters

    def _owner(self, key: str) -> str:
        if self._ring is None:
            raise RuntimeError("peers have not been set")
        return self._ring.get(key)

    def pick_peer(self, key: str) -> Optional[HTTPGetter]:
        """Return the client of the remote node owning ``key``, or None if this node owns it."""
        with self._lock:
            peer = self._owner(key)
            if peer and peer != self.self_addr:
                self._log("Pick peer %s", peer)
                return self._getters[peer]
            return None

    def is_self(self, key: str) -> bool:
        """Tell whether this node owns ``key``."""
        with self._lock:
            peer = self._owner(key)
        return not (peer and peer != self.self_addr)

    def handle(self, method: str, path: str) -> Response:
        """Serve ``<base_path><group>/<key>``.

        Raises ValueError if ``path`` lies outside the base path.
        """
        if not path.startswith(self.base_path):
            raise ValueError(f"HTTPPool serving unexpected path: {path}")
        self._log("%s %s", method, path)

        parts = path[len(self.base_path):].split("/", 1)
        if len(parts) != 2:
            return _error(HTTPStatus.BAD_REQUEST, "Bad Request")
        group_name, key = parts

        group = get_group(group_name)
        if group is None:
            return _error(HTTPStatus.NOT_FOUND, f"no such group: {group_name}")

        try:
            view = group.get(key)
        except Exception as exc:
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, _error_text(exc))
        return Response(HTTPStatus.OK, "application/octet-stream", view.byte_slice())

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        raw_path = environ.get("PATH_INFO", "")
        try:
            path = raw_path.encode("latin-1").decode("utf-8", errors="replace")
        except UnicodeEncodeError:
            path = raw_path
        method = environ.get("REQUEST_METHOD", "GET")
        try:
            response = self.handle(method, path)
        except ValueError as exc:
            logger.error("[Server %s] %s", self.self_addr, exc)
            response = _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")
        status = HTTPStatus(response.status)
        start_response(
            f"{status.value} {status.phrase}",
            [
                ("Content-Type", response.content_type),
                ("Content-Length", str(len(response.body))),
            ],
        )
        return [response.body]


def auto_register(
    self_addr: str,
    config: "Config",
    interval: float = REGISTER_INTERVAL,
    stop_event: Optional[threading.Event] = None,
) -> None:
    """Announce ``self_addr`` to the register center every ``interval`` seconds.

    Runs until ``stop_event`` is set. Raises RegistrationError when the
    register center cannot be reached.
    """
    stop = stop_event if stop_event is not None else threading.Event()
    url = config.server.register_center
    while not stop.wait(interval):
        request = urllib.request.Request(
            url,
            data=self_addr.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
            method="POST",
        )
        try:
            with _opener.open(request):
                pass
        except urllib.error.HTTPError as exc:
            exc.close()
        except (OSError, ValueError) as exc:
            logger.critical("register error: %s %s: err: %s", self_addr, url, exc)
            raise RegistrationError(f"register error: {self_addr} {url}: {exc}") from exc


_run_registration = auto_register
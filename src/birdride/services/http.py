"""
HTTP sessions for the eBird and RideWithGPS clients.

Every session comes from ``create_session()``: short urllib3 retries sized for
a fan-out of ~30 concurrent eBird queries, a connection pool large enough to
hold them all, and a fallback timeout for any request sent without one.

A session built here can also be torn down mid-request.  ``abort_session()``
shuts down the sockets of every connection it opened, so worker threads
blocked reading an eBird response return with a ``ConnectionError`` instead
of sitting out their timeout.  ``EBirdSource`` owns one such session per
aggregation and hands its ``close()`` to the call's ``Deadline``.

Usage::

    from birdride.services.http import session

    resp = session.get("https://ridewithgps.com/routes/12345.json", timeout=10)
    resp.raise_for_status()
"""

from __future__ import annotations

import contextlib
import socket
import threading
import weakref
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3 import PoolManager
from urllib3.util.retry import Retry

#: Two quick retries; a slow sample point is cheaper to lose than to wait on.
DEFAULT_RETRY = Retry(
    total=2,
    backoff_factor=0.5,  # 0s, then 0.5s
    status_forcelist=[429, 502, 503, 504],
    allowed_methods=["GET", "HEAD", "OPTIONS"],
    raise_on_status=False,  # status handling stays with the clients
)

DEFAULT_TIMEOUT = 15  # seconds

USER_AGENT = "BirdRide/1.0 (Bird watching route app)"


class _TrackingPoolManager(PoolManager):
    """PoolManager that remembers every connection its pools open."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.connections: weakref.WeakSet[Any] = weakref.WeakSet()
        self._conn_lock = threading.Lock()

    def _new_pool(self, scheme: str, host: str, port: int, request_context: Any = None) -> Any:
        pool = super()._new_pool(scheme, host, port, request_context=request_context)
        original_new_conn = pool._new_conn

        def _tracked_new_conn() -> Any:
            conn = original_new_conn()
            with self._conn_lock:
                self.connections.add(conn)
            return conn

        pool._new_conn = _tracked_new_conn
        return pool

    def abort(self) -> None:
        """Close all pools and shut down every live socket, idle or in use."""
        self.clear()
        with self._conn_lock:
            conns = list(self.connections)
        for conn in conns:
            sock = getattr(conn, "sock", None)
            if sock is None:
                continue
            with contextlib.suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)


class AbortableAdapter(HTTPAdapter):
    """``HTTPAdapter`` whose in-flight requests can be cut off from another thread."""

    def init_poolmanager(
        self, connections: int, maxsize: int, block: bool = False, **pool_kwargs: Any
    ) -> None:
        self._pool_connections = connections
        self._pool_maxsize = maxsize
        self._pool_block = block
        self.poolmanager = _TrackingPoolManager(
            num_pools=connections, maxsize=maxsize, block=block, **pool_kwargs
        )

    aborted = False

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        if self.aborted:
            raise requests.ConnectionError("session aborted", request=request)
        return super().send(request, **kwargs)

    def abort(self) -> None:
        self.aborted = True
        self.poolmanager.abort()


def create_session(
    retry: Retry | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    pool_size: int = 32,
) -> requests.Session:
    """
    Build a session for the birdride API clients.

    Args:
        retry: Retry policy for both schemes (defaults to ``DEFAULT_RETRY``).
        timeout: Used for any request sent with ``timeout=None``.
        pool_size: Connections kept per host; sized for one route's fan-out.
    """
    s = requests.Session()
    adapter = AbortableAdapter(
        max_retries=retry or DEFAULT_RETRY,
        pool_connections=pool_size,
        pool_maxsize=pool_size,
    )
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers["User-Agent"] = USER_AGENT
    s.headers["Accept"] = "application/json"

    # A query with no deadline still gets a bounded wait.
    _original_send = s.send

    def _send_with_timeout(
        prepared: requests.PreparedRequest, **kwargs: object
    ) -> requests.Response:
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = timeout
        return _original_send(prepared, **kwargs)  # type: ignore[arg-type]

    s.send = _send_with_timeout  # type: ignore[method-assign]
    return s


def abort_session(s: requests.Session) -> None:
    """Abort every request in flight on *s* and close it.  Safe to call repeatedly."""
    for adapter in list(s.adapters.values()):
        if isinstance(adapter, AbortableAdapter):
            adapter.abort()
    s.close()


#: Shared session for one-off requests such as route lookups.
session: requests.Session = create_session()

"""HTTP-01 challenge endpoint.

A minimal Flask application answering
``GET /.well-known/acme-challenge/<token>`` from an
:class:`~autocert.challenge.http01.HttpChallengeStore`, plus a
background server thread that fires the readiness gate once its
socket is bound.

Usage::

    store = InMemoryHttpChallengeStore()
    server = ChallengeServer(create_app(store), host="0.0.0.0", port=80)
    server.start(on_ready=gate.fire)
    ...
    server.stop()
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from flask import Blueprint, Flask, Response, abort, current_app
from werkzeug.serving import make_server

from autocert.challenge.http01 import WELL_KNOWN_PREFIX

if TYPE_CHECKING:
    from collections.abc import Callable

    from werkzeug.serving import BaseWSGIServer

    from autocert.challenge.http01 import HttpChallengeStore

log = logging.getLogger(__name__)

challenge_bp = Blueprint("acme_challenge", __name__)


@challenge_bp.route(
    f"{WELL_KNOWN_PREFIX}<token>",
    methods=["GET"],
    endpoint="challenge_response",
)
def challenge_response(token: str) -> Response:
    """GET /.well-known/acme-challenge/{token}: the key authorization as text."""
    store: HttpChallengeStore = current_app.extensions["autocert_http_store"]
    key_authorization = store.try_get_response(token)
    if key_authorization is None:
        log.debug("No HTTP-01 response for token %s", token)
        abort(404)

    log.info("Answered HTTP-01 challenge for token %s", token)
    return Response(key_authorization, status=200, mimetype="application/octet-stream")


def create_app(store: HttpChallengeStore) -> Flask:
    """Create the Flask application serving HTTP-01 responses from *store*."""
    app = Flask("autocert")
    app.extensions["autocert_http_store"] = store
    app.register_blueprint(challenge_bp)
    return app


class ChallengeServer:
    """Runs a WSGI app on a daemon thread.

    Parameters
    ----------
    app:
        The WSGI application to serve.
    host:
        Bind address.
    port:
        Bind port; ``0`` picks a free port.

    """

    def __init__(self, app: Flask, *, host: str, port: int) -> None:
        self._app = app
        self._host = host
        self._port = port
        self._server: BaseWSGIServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        """The bound port (meaningful once started)."""
        if self._server is None:
            return self._port
        return self._server.server_port

    def start(self, on_ready: Callable[[], object] | None = None) -> None:
        """Bind the socket, call *on_ready*, then serve on a background thread."""
        if self._server is not None:
            msg = "Challenge server is already running"
            raise RuntimeError(msg)

        # Binding happens here, so the socket accepts connections before
        # on_ready runs.
        self._server = make_server(self._host, self._port, self._app, threaded=True)
        log.info("Serving HTTP-01 challenges on %s:%d", self._host, self.port)

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="autocert-http01",
            daemon=True,
        )
        self._thread.start()

        if on_ready is not None:
            on_ready()

    def stop(self) -> None:
        """Shut the server down and join its thread."""
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._thread = None
        log.debug("HTTP-01 challenge server stopped")

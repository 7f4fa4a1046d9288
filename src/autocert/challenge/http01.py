"""HTTP-01 challenge responses (RFC 8555 §8.3).

The authority fetches
``http://{domain}/.well-known/acme-challenge/{token}`` and expects the
key authorization as the response body.  The store maps tokens to key
authorizations; the serving side (see :mod:`autocert.server`) only reads
from it.
"""

from __future__ import annotations

import abc
import logging
import threading
from pathlib import Path

log = logging.getLogger(__name__)

WELL_KNOWN_PREFIX = "/.well-known/acme-challenge/"


class HttpChallengeStore(abc.ABC):
    """Token -> key authorization lookup shared with the HTTP endpoint."""

    @abc.abstractmethod
    def add_challenge_response(self, token: str, key_authorization: str) -> None:
        """Publish *key_authorization* under *token*."""

    @abc.abstractmethod
    def try_get_response(self, token: str) -> str | None:
        """Return the key authorization for *token*, or ``None``."""

    @abc.abstractmethod
    def remove(self, token: str) -> bool:
        """Withdraw *token*; returns whether it was present."""


class InMemoryHttpChallengeStore(HttpChallengeStore):
    """Process-local store, safe to read from server threads."""

    def __init__(self) -> None:
        self._responses: dict[str, str] = {}
        self._lock = threading.Lock()

    def add_challenge_response(self, token: str, key_authorization: str) -> None:
        with self._lock:
            self._responses[token] = key_authorization
        log.debug("Published HTTP-01 response for token %s", token)

    def try_get_response(self, token: str) -> str | None:
        with self._lock:
            return self._responses.get(token)

    def remove(self, token: str) -> bool:
        with self._lock:
            return self._responses.pop(token, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._responses)


class WebrootHttpChallengeStore(HttpChallengeStore):
    """Writes responses as files below a web server's document root.

    ``<webroot>/.well-known/acme-challenge/<token>`` holds the key
    authorization, for setups where another web server answers on
    port 80.
    """

    def __init__(self, webroot: str | Path) -> None:
        self._directory = Path(webroot) / WELL_KNOWN_PREFIX.strip("/")

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, token: str) -> Path:
        if not token or "/" in token or token.startswith("."):
            msg = f"Refusing unsafe challenge token {token!r}"
            raise ValueError(msg)
        return self._directory / token

    def add_challenge_response(self, token: str, key_authorization: str) -> None:
        path = self._path(token)
        self._directory.mkdir(parents=True, exist_ok=True)
        path.write_text(key_authorization, encoding="ascii")
        log.debug("Wrote HTTP-01 response to %s", path)

    def try_get_response(self, token: str) -> str | None:
        try:
            return self._path(token).read_text(encoding="ascii")
        except (FileNotFoundError, ValueError):
            return None

    def remove(self, token: str) -> bool:
        try:
            path = self._path(token)
            path.unlink()
        except (FileNotFoundError, ValueError):
            return False
        log.debug("Removed HTTP-01 response %s", path)
        return True

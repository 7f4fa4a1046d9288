"""One-shot readiness signal for the challenge-serving endpoint.

The authority must not be asked to verify a challenge before the
endpoint answering it accepts connections.  :class:`ReadinessGate`
models that condition: it fires exactly once, releases every waiter
together, and can be awaited before or after it has fired.

Usage::

    gate = ReadinessGate()

    # serving side, once the socket is bound
    gate.fire()

    # issuance side
    await gate.wait()
"""

from __future__ import annotations

import asyncio
import logging
import threading

log = logging.getLogger(__name__)


class ReadinessGate:
    """Single-fire barrier built on an :class:`asyncio.Event` that is never cleared.

    The gate may be created outside a running loop.  :meth:`fire` is
    idempotent.
    """

    def __init__(self, *, fired: bool = False) -> None:
        self._event = asyncio.Event()
        self._lock = threading.Lock()
        self._fired = False
        if fired:
            self.fire()

    @property
    def fired(self) -> bool:
        """Whether the gate has fired."""
        return self._fired

    def fire(self) -> bool:
        """Open the gate.

        Returns ``True`` for the call that actually fired the gate and
        ``False`` for every later call.
        """
        with self._lock:
            if self._fired:
                return False
            self._fired = True
        self._event.set()
        log.debug("Readiness gate fired")
        return True

    async def wait(self) -> None:
        """Block until the gate has fired; returns immediately afterwards."""
        if self._fired and self._event.is_set():
            return
        await self._event.wait()

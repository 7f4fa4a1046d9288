"""Order service: find a reusable order or create a new one (RFC 8555 §7.4)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from autocert.core.types import OrderStatus
from autocert.logging import acme_events

if TYPE_CHECKING:
    from collections.abc import Iterable

    from autocert.accounts.manager import AccountSession
    from autocert.models import Order

log = logging.getLogger(__name__)


class OrderResolver:
    """Resolve the order to work on for a set of domains.

    A pending order already listed for the account is reused when its
    DNS identifiers equal the requested domains as a set.  Orders in
    any other status are never reused.
    """

    async def find_pending_order(
        self,
        session: AccountSession,
        domains: frozenset[str],
    ) -> Order | None:
        """Return the first pending order covering exactly *domains*."""
        for order in await session.client.list_orders():
            if order.status != OrderStatus.PENDING:
                continue
            if order.dns_names() == domains:
                return order
        return None

    async def resolve(self, session: AccountSession, domains: Iterable[str]) -> Order:
        requested = list(domains)
        if not requested:
            msg = "At least one domain is required to order a certificate"
            raise ValueError(msg)

        existing = await self.find_pending_order(session, frozenset(requested))
        if existing is not None:
            log.debug("Found an existing order for a certificate: %s", existing.uri)
            return existing

        log.debug("Creating new order for a certificate")
        order = await session.client.new_order(requested)
        acme_events.order_created(order.uri, requested)
        return order

"""Order entity and Identifier value object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from autocert.core.types import IdentifierType

if TYPE_CHECKING:
    from autocert.core.types import OrderStatus


@dataclass(frozen=True)
class Identifier:
    """ACME identifier value object."""

    type: IdentifierType
    value: str


@dataclass(frozen=True)
class Order:
    """An authority-side certificate order.

    Orders are transient: they live for one issuance attempt and are
    never persisted locally.
    """

    uri: str
    status: OrderStatus
    identifiers: tuple[Identifier, ...]
    authorizations: tuple[str, ...] = ()
    finalize: str | None = None

    def dns_names(self) -> frozenset[str]:
        """DNS identifier values, as a set (ordering is not significant)."""
        return frozenset(i.value for i in self.identifiers if i.type == IdentifierType.DNS)

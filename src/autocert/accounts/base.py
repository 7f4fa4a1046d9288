"""Abstract base class for account persistence.

An account store holds at most one :class:`~autocert.models.Account`
per authority.  Implementations must make :meth:`save_account` atomic:
a reader never observes a half-written account.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from autocert.models import Account


class AccountStoreError(Exception):
    """Raised when a stored account exists but cannot be read.

    Parameters
    ----------
    detail:
        Human-readable description of the problem.
    path:
        Location of the offending record, when the store has one.

    """

    def __init__(self, detail: str, *, path: str | None = None) -> None:
        self.detail = detail
        self.path = path
        super().__init__(detail)


class AccountStore(abc.ABC):
    """Persistence for the authority account."""

    @abc.abstractmethod
    async def get_account(self) -> Account | None:
        """Return the stored account, or ``None`` if there is none."""

    @abc.abstractmethod
    async def save_account(self, account: Account) -> None:
        """Persist *account*, replacing any previously stored one."""

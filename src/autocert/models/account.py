"""Account entity."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Account:
    """An ACME account as persisted by an account store.

    ``private_key`` holds the PKCS#8 DER encoding of the account key.
    The key never changes for the lifetime of the account.
    """

    id: int
    email_addresses: tuple[str, ...]
    private_key: bytes

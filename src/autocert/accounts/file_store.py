"""File-system account store.

Layout::

    <root>/<authority host>/account.json

The JSON document carries the account id, its contact addresses and
the base64-encoded PKCS#8 DER private key.  Writes go through a
temporary file in the same directory followed by :func:`os.replace`,
and the file is created with mode ``0600``.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import os
import tempfile
from pathlib import Path
from urllib.parse import urlsplit

from autocert.accounts.base import AccountStore, AccountStoreError
from autocert.models import Account

log = logging.getLogger(__name__)

ACCOUNT_FILE_NAME = "account.json"


def _authority_dir_name(directory_uri: str) -> str:
    parts = urlsplit(directory_uri)
    host = parts.hostname or "default"
    if parts.port:
        host = f"{host}_{parts.port}"
    return host


class FileSystemAccountStore(AccountStore):
    """Store the account as a JSON file under *root*.

    Parameters
    ----------
    root:
        Base directory for account data.
    directory_uri:
        The authority's directory URL; accounts for different
        authorities live in different sub-directories.

    """

    def __init__(self, root: str | Path, directory_uri: str) -> None:
        self._path = Path(root) / _authority_dir_name(directory_uri) / ACCOUNT_FILE_NAME

    @property
    def path(self) -> Path:
        return self._path

    # -- read -----------------------------------------------------------------

    def _read(self) -> Account | None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            msg = f"Cannot read account file: {exc}"
            raise AccountStoreError(msg, path=str(self._path)) from exc

        try:
            data = json.loads(raw)
            return Account(
                id=int(data["id"]),
                email_addresses=tuple(data.get("email_addresses", [])),
                private_key=base64.b64decode(data["private_key"], validate=True),
            )
        except (ValueError, KeyError, TypeError, binascii.Error) as exc:
            msg = f"Corrupt account file: {exc}"
            raise AccountStoreError(msg, path=str(self._path)) from exc

    async def get_account(self) -> Account | None:
        account = await asyncio.to_thread(self._read)
        if account is None:
            log.debug("No stored account at %s", self._path)
        return account

    # -- write ----------------------------------------------------------------

    def _write(self, account: Account) -> None:
        payload = json.dumps(
            {
                "id": account.id,
                "email_addresses": list(account.email_addresses),
                "private_key": base64.b64encode(account.private_key).decode("ascii"),
            },
            indent=2,
        )
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".account-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def save_account(self, account: Account) -> None:
        await asyncio.to_thread(self._write, account)
        log.info("Saved account %d to %s", account.id, self._path)

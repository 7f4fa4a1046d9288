"""Tests for autocert.accounts.file_store: JSON account persistence."""

from __future__ import annotations

import json
import stat

import pytest

from autocert.accounts.base import AccountStoreError
from autocert.accounts.file_store import FileSystemAccountStore
from autocert.models import Account

_DIRECTORY = "https://acme-staging-v02.api.letsencrypt.org/directory"


def _make_store(tmp_path, directory=_DIRECTORY):
    return FileSystemAccountStore(tmp_path, directory)


class TestLayout:
    def test_path_includes_authority_host(self, tmp_path):
        store = _make_store(tmp_path)
        assert store.path == (
            tmp_path / "acme-staging-v02.api.letsencrypt.org" / "account.json"
        )

    def test_port_is_part_of_directory_name(self, tmp_path):
        store = _make_store(tmp_path, "https://localhost:14000/dir")
        assert store.path.parent.name == "localhost_14000"


class TestRoundTrip:
    @pytest.mark.asyncio
    async def test_missing_file_returns_none(self, tmp_path):
        assert await _make_store(tmp_path).get_account() is None

    @pytest.mark.asyncio
    async def test_save_then_load(self, tmp_path):
        store = _make_store(tmp_path)
        account = Account(id=1234, email_addresses=("a@example.com",), private_key=b"\x30\x81der")

        await store.save_account(account)

        assert await store.get_account() == account
        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert data["id"] == 1234
        assert data["email_addresses"] == ["a@example.com"]

    @pytest.mark.asyncio
    async def test_file_is_private(self, tmp_path):
        store = _make_store(tmp_path)
        await store.save_account(Account(id=1, email_addresses=(), private_key=b"k"))
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    @pytest.mark.asyncio
    async def test_overwrite_leaves_no_temp_files(self, tmp_path):
        store = _make_store(tmp_path)
        await store.save_account(Account(id=1, email_addresses=(), private_key=b"k1"))
        await store.save_account(Account(id=2, email_addresses=(), private_key=b"k2"))

        assert (await store.get_account()).id == 2
        assert [p.name for p in store.path.parent.iterdir()] == ["account.json"]


class TestCorruption:
    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path):
        store = _make_store(tmp_path)
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")

        with pytest.raises(AccountStoreError, match="Corrupt account file"):
            await store.get_account()

    @pytest.mark.asyncio
    async def test_missing_key(self, tmp_path):
        store = _make_store(tmp_path)
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"id": 1}), encoding="utf-8")

        with pytest.raises(AccountStoreError) as exc_info:
            await store.get_account()
        assert exc_info.value.path == str(store.path)

    @pytest.mark.asyncio
    async def test_bad_base64(self, tmp_path):
        store = _make_store(tmp_path)
        store.path.parent.mkdir(parents=True)
        store.path.write_text(
            json.dumps({"id": 1, "private_key": "***"}),
            encoding="utf-8",
        )
        with pytest.raises(AccountStoreError):
            await store.get_account()

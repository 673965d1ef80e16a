from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import (
    InvalidAddress,
    NonceConflict,
    StoreUnavailable,
    WalletAlreadyExists,
    WalletNotFound,
)
from app.services.wallet_store import InMemoryWalletStore, SqlWalletStore

CHECKSUMMED = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


class TestWalletStore:
    """Contract tests, run against the SQL and in-memory stores"""

    def test_find_missing(self, store):
        assert store.find_by_address(CHECKSUMMED) is None

    def test_create_assigns_id_and_nonce(self, store):
        wallet = store.create(CHECKSUMMED.lower())

        assert wallet.address == CHECKSUMMED
        assert wallet.nonce
        assert store.find_by_address(CHECKSUMMED) == wallet

    def test_create_duplicate(self, store):
        store.create(CHECKSUMMED)
        with pytest.raises(WalletAlreadyExists):
            store.create(CHECKSUMMED.lower())

    def test_get_or_create_is_idempotent(self, store):
        first = store.get_or_create(CHECKSUMMED.lower())
        second = store.get_or_create("0x" + CHECKSUMMED[2:].upper())

        assert first.id == second.id
        assert first.nonce == second.nonce

    def test_rotate_nonce(self, store):
        wallet = store.create(CHECKSUMMED)
        rotated = store.rotate_nonce(CHECKSUMMED)

        assert rotated.id == wallet.id
        assert rotated.nonce != wallet.nonce
        assert rotated.updated_at >= wallet.updated_at
        assert store.find_by_address(CHECKSUMMED).nonce == rotated.nonce

    def test_rotate_with_expected_nonce(self, store):
        wallet = store.create(CHECKSUMMED)
        rotated = store.rotate_nonce(CHECKSUMMED, expected_nonce=wallet.nonce)
        assert rotated.nonce != wallet.nonce

    def test_rotate_with_stale_nonce(self, store):
        wallet = store.create(CHECKSUMMED)
        rotated = store.rotate_nonce(CHECKSUMMED, expected_nonce=wallet.nonce)

        with pytest.raises(NonceConflict):
            store.rotate_nonce(CHECKSUMMED, expected_nonce=wallet.nonce)
        # the losing rotation left the winner's nonce in place
        assert store.find_by_address(CHECKSUMMED).nonce == rotated.nonce

    def test_timestamps_are_utc(self, store):
        wallet = store.create(CHECKSUMMED)
        rotated = store.rotate_nonce(CHECKSUMMED, expected_nonce=wallet.nonce)
        found = store.find_by_address(CHECKSUMMED)

        for identity in (wallet, rotated, found):
            assert identity.created_at.utcoffset() == timedelta(0)
            assert identity.updated_at.utcoffset() == timedelta(0)

    def test_rotate_unknown(self, store):
        with pytest.raises(WalletNotFound):
            store.rotate_nonce(CHECKSUMMED)

    def test_invalid_address(self, store):
        with pytest.raises(InvalidAddress):
            store.get_or_create("0x1234")


class TestGetOrCreateRace:
    def test_refetches_after_concurrent_insert(self, monkeypatch):
        """Another request inserts between our miss and our create"""
        store = InMemoryWalletStore()
        existing = store.create(CHECKSUMMED)
        real_find = store.find_by_address
        calls = []

        def find_missing_once(address):
            calls.append(address)
            if len(calls) == 1:
                return None
            return real_find(address)

        monkeypatch.setattr(store, "find_by_address", find_missing_once)

        assert store.get_or_create(CHECKSUMMED) == existing
        assert len(calls) == 2


class TestSqlStoreUnavailable:
    """Backend failures surface as StoreUnavailable, not raw driver errors"""

    @pytest.fixture
    def broken_store(self):
        def session_factory():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        return SqlWalletStore(session_factory)

    def test_find(self, broken_store):
        with pytest.raises(StoreUnavailable):
            broken_store.find_by_address(CHECKSUMMED)

    def test_create(self, broken_store):
        with pytest.raises(StoreUnavailable):
            broken_store.create(CHECKSUMMED)

    def test_rotate(self, broken_store):
        with pytest.raises(StoreUnavailable):
            broken_store.rotate_nonce(CHECKSUMMED)

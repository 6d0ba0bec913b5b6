"""Tests for ledger store selection."""

import pytest

from src.rl_ledger.infrastructure.memory_store import InMemoryLedgerStore
from src.rl_ledger.infrastructure.persistence import PostgresLedgerStore
from src.rl_ledger.infrastructure.store_factory import build_ledger_store, get_ledger_store


def test_builds_memory_store() -> None:
    assert isinstance(build_ledger_store("memory"), InMemoryLedgerStore)


def test_builds_postgres_store() -> None:
    assert isinstance(build_ledger_store("postgres"), PostgresLedgerStore)


def test_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError, match="LEDGER_STORE"):
        build_ledger_store("firestore")


def test_get_ledger_store_is_shared() -> None:
    assert get_ledger_store() is get_ledger_store()

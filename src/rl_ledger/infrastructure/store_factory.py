"""Ledger store selection — one process-wide store per LEDGER_STORE setting."""

from config.settings import settings
from src.rl_common.database import async_session_factory
from src.rl_ledger.domain.repository import LedgerStoreProtocol
from src.rl_ledger.infrastructure.memory_store import InMemoryLedgerStore
from src.rl_ledger.infrastructure.persistence import PostgresLedgerStore

_store: LedgerStoreProtocol | None = None


def build_ledger_store(kind: str) -> LedgerStoreProtocol:
    if kind == "postgres":
        return PostgresLedgerStore(async_session_factory)
    if kind == "memory":
        return InMemoryLedgerStore()
    raise ValueError(f"Unknown LEDGER_STORE: {kind!r} (expected 'postgres' or 'memory')")


def get_ledger_store() -> LedgerStoreProtocol:
    """FastAPI dependency: the shared ledger store."""
    global _store  # noqa: PLW0603
    if _store is None:
        _store = build_ledger_store(settings.LEDGER_STORE)
    return _store

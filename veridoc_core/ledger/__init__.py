# veridoc_core/ledger/__init__.py

from .models import EventKind, IdentityRecord, IdentityStatus, LedgerEvent
from .provider import LedgerStore
from .providers.memory_provider import InMemoryLedgerStore
from .providers.sqlite_provider import SQLiteLedgerStore
from .machine import IdentityLedger
from veridoc_core.constants import DEFAULT_DB_PATH, DEFAULT_LEDGER_PROVIDER
import os


def load_ledger_store(config: dict | None = None) -> LedgerStore:
    """
    Factory resolver for the ledger state backend.

        - memory (default)
        - sqlite
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("VERIDOC_LEDGER_PROVIDER", DEFAULT_LEDGER_PROVIDER)

    if provider == "memory":
        return InMemoryLedgerStore()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("VERIDOC_DB_PATH", DEFAULT_DB_PATH)
        return SQLiteLedgerStore(db_path)

    raise ValueError(f"Unknown ledger provider: {provider}")


__all__ = [
    "EventKind",
    "IdentityRecord",
    "IdentityStatus",
    "LedgerEvent",
    "LedgerStore",
    "InMemoryLedgerStore",
    "SQLiteLedgerStore",
    "IdentityLedger",
    "load_ledger_store",
]

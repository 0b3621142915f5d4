# veridoc_core/ledger/provider.py
from __future__ import annotations
from typing import ContextManager, Iterable, List, Optional
from .models import EventKind, IdentityRecord, LedgerEvent

VERIFIER_SET_KEY = "__verifiers__"


class LedgerStore:
    """
    Injectable state behind the identity ledger.

    Providers own atomicity: every mutation the state machine performs happens
    inside ``transaction(keys)``, which serializes access to the named keys
    (principals, or VERIFIER_SET_KEY) and commits all writes together or none.
    """

    # bootstrap
    def bootstrap(self, owner: str) -> str: ...
    def get_owner(self) -> Optional[str]: ...

    # identities
    def get_identity(self, principal: str) -> Optional[IdentityRecord]: ...
    # create_identity raises StateConflictError when a record already exists
    def create_identity(self, rec: IdentityRecord) -> None: ...
    def save_identity(self, rec: IdentityRecord) -> None: ...

    # verifier set
    def is_verifier(self, principal: str) -> bool: ...
    def add_verifier(self, principal: str) -> None: ...
    def remove_verifier(self, principal: str) -> None: ...
    def list_verifiers(self) -> List[str]: ...

    # audit
    def append_event(self, event: LedgerEvent) -> LedgerEvent: ...
    def query_events(self, principal: Optional[str] = None,
                     kind: Optional[EventKind] = None) -> List[LedgerEvent]: ...

    # replay guard; True when tx_id was not seen before
    def mark_tx(self, tx_id: str) -> bool: ...

    def transaction(self, keys: Iterable[str]) -> ContextManager[None]: ...

    def close(self) -> None:
        return

from contextlib import contextmanager
from typing import Callable, Dict, List, Optional
import threading

from veridoc_core.errors import StateConflictError
from veridoc_core.ledger.models import EventKind, IdentityRecord, LedgerEvent
from veridoc_core.ledger.provider import LedgerStore


LOCK_STRIPES = 64


class InMemoryLedgerStore(LedgerStore):
    """
    Dict-backed store guarded by a fixed pool of striped record locks, so
    unrelated records rarely contend and the lock pool never grows.

    Writes made inside ``transaction()`` are journaled per thread and undone
    if the block raises.
    """

    def __init__(self, stripes: int = LOCK_STRIPES):
        self.owner = None
        self.identities: Dict[str, IdentityRecord] = {}
        self.verifiers: Dict[str, None] = {}  # insertion-ordered set
        self.events: List[LedgerEvent] = []
        self.replay = set()
        self._next_seq = 0

        self._guard = threading.Lock()
        self._locks: List[threading.RLock] = [threading.RLock() for _ in range(max(1, stripes))]
        self._local = threading.local()

    def _stripe(self, key: str) -> int:
        return hash(key) % len(self._locks)

    @contextmanager
    def transaction(self, keys):
        # stripes are taken in index order so multi-key callers cannot deadlock
        locks = [self._locks[i] for i in sorted({self._stripe(k) for k in keys})]
        outermost = getattr(self._local, "undo", None) is None
        for lock in locks:
            lock.acquire()
        if outermost:
            self._local.undo = []
        try:
            yield
        except BaseException:
            if outermost:
                for undo in reversed(self._local.undo):
                    undo()
            raise
        finally:
            if outermost:
                self._local.undo = None
            for lock in reversed(locks):
                lock.release()

    def _journal(self, undo: Callable[[], None]):
        journal = getattr(self._local, "undo", None)
        if journal is not None:
            journal.append(undo)

    # bootstrap
    def bootstrap(self, owner: str) -> str:
        with self._guard:
            if self.owner is None:
                self.owner = owner
                self._journal(lambda: setattr(self, "owner", None))
            return self.owner

    def get_owner(self):
        return self.owner

    # identities
    def get_identity(self, principal: str) -> Optional[IdentityRecord]:
        rec = self.identities.get(principal)
        return rec.copy() if rec else None

    def create_identity(self, rec: IdentityRecord):
        if rec.owner in self.identities:
            raise StateConflictError(f"identity already registered: {rec.owner}")
        self.save_identity(rec)

    def save_identity(self, rec: IdentityRecord):
        prev = self.identities.get(rec.owner)
        self.identities[rec.owner] = rec.copy()
        if prev is None:
            self._journal(lambda: self.identities.pop(rec.owner, None))
        else:
            self._journal(lambda: self.identities.__setitem__(rec.owner, prev))

    # verifier set
    def is_verifier(self, principal: str) -> bool:
        return principal in self.verifiers

    def add_verifier(self, principal: str):
        if principal not in self.verifiers:
            self.verifiers[principal] = None
            self._journal(lambda: self.verifiers.pop(principal, None))

    def remove_verifier(self, principal: str):
        if principal in self.verifiers:
            del self.verifiers[principal]
            self._journal(lambda: self.verifiers.__setitem__(principal, None))

    def list_verifiers(self):
        return list(self.verifiers)

    # audit
    def append_event(self, event: LedgerEvent) -> LedgerEvent:
        stored = LedgerEvent.from_dict(event.to_dict())
        with self._guard:
            stored.seq = event.seq = self._next_seq
            self._next_seq += 1
            self.events.append(stored)
        self._journal(lambda: self._drop_event(stored))
        return event

    def _drop_event(self, stored: LedgerEvent):
        with self._guard:
            self.events = [e for e in self.events if e is not stored]

    def query_events(self, principal=None, kind: Optional[EventKind] = None):
        with self._guard:
            snapshot = list(self.events)
        return [
            LedgerEvent.from_dict(e.to_dict()) for e in snapshot
            if (principal is None or principal in (e.subject, e.actor))
            and (kind is None or e.kind == kind)
        ]

    # replay guard
    def mark_tx(self, tx_id: str) -> bool:
        with self._guard:
            if tx_id in self.replay:
                return False
            self.replay.add(tx_id)
            return True

"""
veridoc_core.ledger.machine
---------------------------
Identity authorization state machine.

    NotRegistered -> Pending -> Verified | Rejected

Who may move an identity, and when:

- only the owner adds or removes verifiers; the owner is always a verifier
- a principal registers itself, once, with a non-empty content address
- any verifier moves a Pending identity to Verified or Rejected

Each mutation is applied inside a store transaction: preconditions are checked
against the latest committed state and every effect (record, verifier set,
audit event) commits together or not at all. Rejection is permanent; a
Rejected principal cannot register again.
"""

from __future__ import annotations
from typing import Callable, List, Optional

from veridoc_core.constants import EVENT_TOPIC_PREFIX, ZERO_PRINCIPAL
from veridoc_core.errors import (
    AuthorizationError,
    InvalidArgumentError,
    InvariantViolationError,
    StateConflictError,
)
from veridoc_core.logger import get_logger
from veridoc_core.transaction import Transaction, verify_transaction
from veridoc_core.utils import canonical_json, check_principal, now_ts
from .models import EventKind, IdentityRecord, IdentityStatus, LedgerEvent
from .provider import LedgerStore, VERIFIER_SET_KEY

log = get_logger("Veridoc.Ledger")

# op name -> argument names accepted from a signed transaction
_SUBMITTABLE = {
    "add_verifier": ("target",),
    "remove_verifier": ("target",),
    "register_identity": ("content_address",),
    "verify_identity": ("target",),
    "reject_identity": ("target",),
}


class IdentityLedger:
    def __init__(
        self,
        store: LedgerStore,
        owner: str,
        publisher=None,
        clock: Callable[[], str] = now_ts,
    ):
        check_principal(owner, allow_zero=False)
        self.store = store
        self.publisher = publisher
        self.clock = clock

        event = None
        with store.transaction([VERIFIER_SET_KEY]):
            fresh = store.get_owner() is None
            current = store.bootstrap(owner)
            if current != owner:
                raise InvariantViolationError(f"ledger is already owned by {current}")
            if fresh:
                store.add_verifier(owner)
                event = self._append(EventKind.VERIFIER_ADDED, owner, owner)
        if event:
            log.info(f"[LEDGER] bootstrapped owner={owner}")
            self._publish(event)

    @property
    def owner(self) -> str:
        return self.store.get_owner()

    # ------------------------------------------------------------------
    # Verifier set
    # ------------------------------------------------------------------
    def add_verifier(self, caller: str, target: str) -> LedgerEvent:
        check_principal(caller)
        check_principal(target)
        with self.store.transaction([VERIFIER_SET_KEY]):
            self._require_owner(caller, "add verifiers")
            if target == ZERO_PRINCIPAL:
                raise InvalidArgumentError("cannot add the null principal as verifier")
            if self.store.is_verifier(target):
                raise InvalidArgumentError(f"{target} is already a verifier")
            self.store.add_verifier(target)
            event = self._append(EventKind.VERIFIER_ADDED, target, caller)
        log.info(f"[LEDGER] verifier added target={target}")
        self._publish(event)
        return event

    def remove_verifier(self, caller: str, target: str) -> LedgerEvent:
        check_principal(caller)
        check_principal(target)
        with self.store.transaction([VERIFIER_SET_KEY]):
            owner = self._require_owner(caller, "remove verifiers")
            if target == owner:
                raise InvariantViolationError("the owner can never be removed as verifier")
            if not self.store.is_verifier(target):
                raise InvalidArgumentError(f"{target} is not a verifier")
            self.store.remove_verifier(target)
            event = self._append(EventKind.VERIFIER_REMOVED, target, caller)
        log.info(f"[LEDGER] verifier removed target={target}")
        self._publish(event)
        return event

    # ------------------------------------------------------------------
    # Identity transitions
    # ------------------------------------------------------------------
    def register_identity(self, caller: str, content_address: str) -> LedgerEvent:
        check_principal(caller, allow_zero=False)
        if not isinstance(content_address, str) or not content_address.strip():
            raise InvalidArgumentError("content address must be a non-empty string")

        with self.store.transaction([caller]):
            current = self._record(caller)
            if current.status != IdentityStatus.NOT_REGISTERED:
                raise StateConflictError(
                    f"{caller} is already registered (status={current.status.value})"
                )
            ts = self.clock()
            self.store.create_identity(IdentityRecord(
                owner=caller,
                content_address=content_address,
                registered_at=ts,
                status=IdentityStatus.PENDING,
            ))
            event = self._append(
                EventKind.IDENTITY_REGISTERED, caller, caller,
                data={"content_address": content_address}, ts=ts,
            )
        log.info(f"[LEDGER] identity registered principal={caller}")
        self._publish(event)
        return event

    def verify_identity(self, caller: str, target: str) -> LedgerEvent:
        return self._decide(caller, target, IdentityStatus.VERIFIED)

    def reject_identity(self, caller: str, target: str) -> LedgerEvent:
        return self._decide(caller, target, IdentityStatus.REJECTED)

    def _decide(self, caller: str, target: str, outcome: IdentityStatus) -> LedgerEvent:
        check_principal(caller)
        check_principal(target)
        with self.store.transaction([target]):
            if not self.store.is_verifier(caller):
                raise AuthorizationError(f"{caller} is not a verifier")
            rec = self._record(target)
            if rec.status != IdentityStatus.PENDING:
                raise StateConflictError(
                    f"{target} is not pending (status={rec.status.value})"
                )
            rec.status = outcome
            if outcome == IdentityStatus.VERIFIED:
                rec.acting_verifiers.append(caller)
                kind = EventKind.IDENTITY_VERIFIED
            else:
                kind = EventKind.IDENTITY_REJECTED
            self.store.save_identity(rec)
            event = self._append(kind, target, caller)
        log.info(f"[LEDGER] identity {outcome.value.lower()} principal={target} by={caller}")
        self._publish(event)
        return event

    # ------------------------------------------------------------------
    # Signed transactions
    # ------------------------------------------------------------------
    def submit(self, tx: Transaction) -> LedgerEvent:
        """
        Apply a signed transaction on behalf of ``tx.sender``.

        The signature must verify against ``tx.pubkey`` and the key must derive
        to the sender's address. A tx id is consumed on first sight, even when
        the operation it carries then fails.
        """
        if not verify_transaction(tx):
            raise AuthorizationError("transaction signature does not match sender")
        if not self.store.mark_tx(tx.tx_id):
            raise StateConflictError(f"transaction {tx.tx_id} was already submitted")

        params = _SUBMITTABLE.get(tx.op)
        if params is None:
            raise InvalidArgumentError(f"unknown ledger operation: {tx.op!r}")
        if set(tx.args) != set(params):
            raise InvalidArgumentError(f"{tx.op} expects arguments {list(params)}")

        log.debug(f"[LEDGER] submit tx={tx.tx_id} op={tx.op} sender={tx.sender}")
        return getattr(self, tx.op)(tx.sender, **tx.args)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_identity(self, target: str) -> IdentityRecord:
        check_principal(target)
        return self._record(target)

    def get_status(self, target: str) -> IdentityStatus:
        return self.get_identity(target).status

    def is_verified(self, target: str) -> bool:
        return self.get_status(target) == IdentityStatus.VERIFIED

    def get_content_address(self, target: str) -> str:
        return self.get_identity(target).content_address

    def get_verifiers_of(self, target: str) -> List[str]:
        return list(self.get_identity(target).acting_verifiers)

    def is_verifier(self, principal: str) -> bool:
        check_principal(principal)
        return self.store.is_verifier(principal)

    def list_verifiers(self) -> List[str]:
        return self.store.list_verifiers()

    def events(self, principal: Optional[str] = None, kind=None) -> List[LedgerEvent]:
        if principal is not None:
            check_principal(principal)
        if kind is not None:
            try:
                kind = EventKind(kind)
            except ValueError as e:
                raise InvalidArgumentError(f"unknown event kind: {kind!r}") from e
        return self.store.query_events(principal=principal, kind=kind)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _record(self, principal: str) -> IdentityRecord:
        return self.store.get_identity(principal) or IdentityRecord.unregistered(principal)

    def _require_owner(self, caller: str, action: str) -> str:
        owner = self.store.get_owner()
        if caller != owner:
            raise AuthorizationError(f"only the owner may {action}")
        return owner

    def _append(self, kind: EventKind, subject: str, actor: str,
                data: Optional[dict] = None, ts: Optional[str] = None) -> LedgerEvent:
        return self.store.append_event(LedgerEvent(
            kind=kind, subject=subject, actor=actor,
            ts=ts or self.clock(), data=data or {},
        ))

    def _publish(self, event: LedgerEvent) -> None:
        # runs after commit; egress failures never undo ledger state
        if self.publisher is None:
            return
        topic = EVENT_TOPIC_PREFIX + event.kind.value
        try:
            self.publisher.publish(topic, canonical_json(event.to_dict()), key=event.subject)
        except Exception:
            log.exception(f"[LEDGER] event publish failed topic={topic} seq={event.seq}")

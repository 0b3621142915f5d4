# veridoc_core/ledger/models.py
from __future__ import annotations
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Dict, List, Optional


class IdentityStatus(str, Enum):
    NOT_REGISTERED = "NotRegistered"
    PENDING = "Pending"
    VERIFIED = "Verified"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (IdentityStatus.VERIFIED, IdentityStatus.REJECTED)


class EventKind(str, Enum):
    VERIFIER_ADDED = "VerifierAdded"
    VERIFIER_REMOVED = "VerifierRemoved"
    IDENTITY_REGISTERED = "IdentityRegistered"
    IDENTITY_VERIFIED = "IdentityVerified"
    IDENTITY_REJECTED = "IdentityRejected"


@dataclass
class IdentityRecord:
    """
    Ledger-level representation of one principal's identity.

    Storage-agnostic; every provider stores and returns copies so callers
    never alias ledger state.
    """
    owner: str
    content_address: str = ""
    registered_at: Optional[str] = None
    status: IdentityStatus = IdentityStatus.NOT_REGISTERED
    acting_verifiers: List[str] = field(default_factory=list)

    @classmethod
    def unregistered(cls, principal: str) -> "IdentityRecord":
        """Sentinel for a principal that has no stored record."""
        return cls(owner=principal)

    def copy(self) -> "IdentityRecord":
        return IdentityRecord(
            owner=self.owner,
            content_address=self.content_address,
            registered_at=self.registered_at,
            status=self.status,
            acting_verifiers=list(self.acting_verifiers),
        )


@dataclass
class LedgerEvent:
    """Append-only audit entry. ``seq`` is assigned by the store on append."""
    kind: EventKind
    subject: str
    actor: str
    ts: str
    data: Dict[str, Any] = field(default_factory=dict)
    seq: int = -1

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerEvent":
        return cls(
            kind=EventKind(data["kind"]),
            subject=data["subject"],
            actor=data["actor"],
            ts=data["ts"],
            data=dict(data.get("data", {})),
            seq=int(data.get("seq", -1)),
        )

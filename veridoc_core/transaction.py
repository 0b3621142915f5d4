"""
veridoc_core.transaction
------------------------
Signed ledger transaction, the canonical container a principal submits to
the identity ledger.

- Deterministic canonicalization for signing
- Replay-safe identifier (tx_id) checked by the ledger's replay guard
- Sender bound to the signing key through principal_address()
"""

from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional
import binascii

from .crypto import ed25519_sign, ed25519_verify
from .utils import b64d, b64e, canonical_json, new_id, now_ts, principal_address


@dataclass
class Transaction:
    op: str = ""                # e.g. "register_identity"
    args: Dict[str, Any] = field(default_factory=dict)
    sender: str = ""            # principal address
    pubkey: str = ""            # base64 Ed25519 public key of sender
    tx_id: str = field(default_factory=new_id)
    ts: str = field(default_factory=now_ts)
    sig: Optional[str] = None   # base64 signature over to_signing_bytes()

    def to_signing_bytes(self) -> bytes:
        body = {
            "op": self.op,
            "args": self.args,
            "sender": self.sender,
            "pubkey": self.pubkey,
            "tx_id": self.tx_id,
            "ts": self.ts,
        }
        return canonical_json(body)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def make(op: str, args: Dict[str, Any], pub_raw: bytes) -> "Transaction":
        """Factory deriving sender and pubkey fields from the signer's public key."""
        return Transaction(op=op, args=dict(args), sender=principal_address(pub_raw), pubkey=b64e(pub_raw))

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        return cls(
            op=data.get("op", ""),
            args=dict(data.get("args", {})),
            sender=data.get("sender", ""),
            pubkey=data.get("pubkey", ""),
            tx_id=data.get("tx_id") or new_id(),
            ts=data.get("ts", now_ts()),
            sig=data.get("sig"),
        )


def sign_transaction(tx: Transaction, priv_raw: bytes) -> Transaction:
    tx.sig = b64e(ed25519_sign(priv_raw, tx.to_signing_bytes()))
    return tx


def verify_transaction(tx: Transaction) -> bool:
    if not tx.sig or not tx.pubkey:
        return False
    try:
        pub_raw = b64d(tx.pubkey)
        sig = b64d(tx.sig)
    except (binascii.Error, ValueError):
        return False
    if principal_address(pub_raw) != tx.sender:
        return False
    return ed25519_verify(pub_raw, sig, tx.to_signing_bytes())

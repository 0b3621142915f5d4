"""
veridoc_core.utils
------------------
Lightweight helpers for ids, timestamps, base64, digests and canonical JSON.
Canonical JSON keeps transaction signing and manifest encoding deterministic.
"""

from __future__ import annotations
import base64, json, time, uuid, hashlib, re
from typing import Any, Dict

from .constants import ZERO_PRINCIPAL
from .errors import InvalidArgumentError

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"))

def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def new_id() -> str:
    return uuid.uuid4().hex

def canonical_json(obj: Dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")

def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()

def principal_address(pub_raw: bytes) -> str:
    """Derive a principal address: first 20 bytes of SHA-256(pubkey), 0x-prefixed hex."""
    return "0x" + hashlib.sha256(pub_raw).hexdigest()[:40]

def check_principal(principal: str, allow_zero: bool = True) -> str:
    if not isinstance(principal, str) or not _ADDRESS_RE.match(principal):
        raise InvalidArgumentError(f"malformed principal address: {principal!r}")
    if not allow_zero and principal == ZERO_PRINCIPAL:
        raise InvalidArgumentError("null principal is not allowed here")
    return principal

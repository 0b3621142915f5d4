# veridoc_core/content/manifest.py
from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List
import json

from veridoc_core.constants import MANIFEST_FORMAT_VERSION
from veridoc_core.errors import DecryptionError
from veridoc_core.utils import canonical_json, now_ts


@dataclass
class Manifest:
    """
    Index of a registrant's encrypted documents.

    The manifest is itself encrypted and stored; its content address is the
    only value the identity ledger records.
    """
    document_addresses: List[str]
    created_at: str = field(default_factory=now_ts)
    format_version: str = MANIFEST_FORMAT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_bytes(self) -> bytes:
        return canonical_json(self.to_dict())

    @classmethod
    def from_bytes(cls, data: bytes) -> "Manifest":
        try:
            raw = json.loads(data.decode("utf-8"))
            addresses = raw["document_addresses"]
            version = str(raw["format_version"])
            created_at = raw["created_at"]
        except (UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
            raise DecryptionError("decrypted content is not a valid manifest") from e

        if version != MANIFEST_FORMAT_VERSION:
            raise DecryptionError(f"unsupported manifest format version {version!r}")
        if (not isinstance(addresses, list) or not addresses
                or not all(isinstance(a, str) and a for a in addresses)):
            raise DecryptionError("manifest lists no valid document addresses")
        return cls(document_addresses=list(addresses), created_at=created_at, format_version=version)

from typing import Dict
import threading

from veridoc_core.content.provider import DocumentStore
from veridoc_core.errors import NotFoundError
from veridoc_core.utils import sha256


class InMemoryDocumentStore(DocumentStore):
    """Process-local store; the address is the SHA-256 hex digest of the blob."""

    name = "memory"

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, blob: bytes) -> str:
        address = sha256(blob)
        with self._lock:
            self.blobs.setdefault(address, bytes(blob))
        return address

    def get(self, address: str) -> bytes:
        with self._lock:
            blob = self.blobs.get(address)
        if blob is None:
            raise NotFoundError(f"no blob at address {address!r}")
        return blob

# veridoc_core/content/provider.py
from __future__ import annotations


class DocumentStore:
    """
    Content-addressed blob store contract.

    put(blob)    -> address; re-putting identical bytes is safe
    get(address) -> blob; NotFoundError for unknown addresses

    Transport failures and timeouts surface as StoreUnavailableError.
    """
    name: str = "base"

    def put(self, blob: bytes) -> str:
        raise NotImplementedError

    def get(self, address: str) -> bytes:
        raise NotImplementedError

    def healthz(self) -> dict:
        return {"status": "ok", "store": self.name}

    def close(self) -> None:
        return

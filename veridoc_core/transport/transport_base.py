from __future__ import annotations
from typing import Any, Callable, Dict, Optional
import json

Headers = Dict[str, str]


class BaseTransport:
    """
    Ledger event egress contract.

    Canonical payload at the transport boundary is bytes.
    Adapters still accept dict and convert.
    """
    name: str = "base"

    def publish(
        self,
        topic: str,
        payload: bytes | dict,
        headers: Optional[Headers] = None,
        key: Optional[str] = None,
    ) -> Any:
        raise NotImplementedError

    def subscribe(self, topic: str, handler: Callable[[dict], None]) -> Any:
        raise NotImplementedError

    def healthz(self) -> dict:
        return {"status": "ok", "transport": self.name}

    def close(self) -> None:
        return

    @staticmethod
    def to_bytes(payload: bytes | dict) -> bytes:
        if isinstance(payload, bytes):
            return payload
        return json.dumps(payload, ensure_ascii=False).encode("utf-8")

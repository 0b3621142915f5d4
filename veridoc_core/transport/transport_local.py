# veridoc_core/transport/transport_local.py
from __future__ import annotations
from collections import defaultdict
from typing import Callable, Optional
import json, threading

from veridoc_core.logger import get_logger
from veridoc_core.transport.transport_base import BaseTransport

log = get_logger("Veridoc.Transport.Local")


class LocalAdapter(BaseTransport):
    """
    In-process pub/sub. Handlers run synchronously on the publishing thread
    and receive the decoded JSON payload.

    A subscription topic ending in ``*`` matches every topic with that prefix.
    """

    name = "local"

    def __init__(self):
        self.handlers = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, topic: str, handler: Callable[[dict], None]):
        with self._lock:
            self.handlers[topic].append(handler)
        log.info(f"[LOCAL SUB] {topic}")

    def publish(self, topic: str, payload, headers=None, key: Optional[str] = None):
        data = self.to_bytes(payload)
        log.info(f"[LOCAL PUB] {topic} bytes={len(data)}")

        with self._lock:
            targets = [
                h for pattern, hs in self.handlers.items()
                if pattern == topic or (pattern.endswith("*") and topic.startswith(pattern[:-1]))
                for h in hs
            ]
        if not targets:
            return
        message = json.loads(data.decode("utf-8"))
        for handler in targets:
            handler(message)

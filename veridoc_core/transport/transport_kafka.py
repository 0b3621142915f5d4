# veridoc_core/transport/transport_kafka.py
import logging
from typing import Dict, Optional

from veridoc_core.constants import EVENT_TOPIC_PREFIX
from veridoc_core.transport.transport_base import BaseTransport

log = logging.getLogger("Veridoc.Transport.Kafka")


class KafkaAdapter(BaseTransport):
    """
    Publishes committed ledger events to Kafka.

    Topics are ``identity.<EventKind>``. The record key is the event subject,
    so every event about one principal lands on the same partition in commit
    order. Each record carries an ``event-kind`` header for consumers that
    subscribe by pattern.

    ``producer`` may be any object with kafka-python's ``send``/``flush``/
    ``close``; when omitted a ``KafkaProducer`` is built for ``brokers``.
    """

    name = "kafka"

    def __init__(self, brokers="localhost:9092", enabled=True, producer=None,
                 flush_timeout: float = 1.0):
        self.brokers = brokers
        self.enabled = enabled
        self.flush_timeout = flush_timeout
        self._producer = producer

        if not self.enabled:
            log.warning("[KAFKA] event egress disabled")
            return
        if self._producer is not None:
            return

        try:
            from kafka import KafkaProducer

            # acks=all: an event is only reported published once replicated
            self._producer = KafkaProducer(
                bootstrap_servers=self.brokers,
                acks="all",
                linger_ms=5,
            )
            log.info(f"[KAFKA] producer ready brokers={self.brokers}")
        except Exception:
            log.exception(f"[KAFKA] producer init failed brokers={self.brokers}, egress disabled")
            self.enabled = False

    @staticmethod
    def _event_headers(topic: str, extra: Optional[Dict[str, str]]):
        headers = dict(extra or {})
        if topic.startswith(EVENT_TOPIC_PREFIX):
            headers.setdefault("event-kind", topic[len(EVENT_TOPIC_PREFIX):])
        return [(k, str(v).encode("utf-8")) for k, v in headers.items()]

    def publish(self, topic: str, payload, headers=None, key: Optional[str] = None) -> bool:
        """Send one event; returns False when disabled or the broker refused it."""
        if not self.enabled:
            log.debug(f"[KAFKA SKIP] {topic}")
            return False

        data = self.to_bytes(payload)
        try:
            self._producer.send(
                topic,
                value=data,
                key=key.encode("utf-8") if key else None,
                headers=self._event_headers(topic, headers),
            )
            self._producer.flush(timeout=self.flush_timeout)
        except Exception:
            log.exception(f"[KAFKA PUB ERROR] topic={topic} key={key}")
            return False

        log.info(f"[KAFKA PUB] topic={topic} key={key} bytes={len(data)}")
        return True

    def healthz(self) -> dict:
        return {"status": "ok" if self.enabled else "disabled", "transport": self.name, "brokers": self.brokers}

    def close(self) -> None:
        if self._producer is not None:
            self._producer.close()
            self._producer = None

# veridoc_core/transport/__init__.py
import os
from veridoc_core.transport.transport_base import BaseTransport
from veridoc_core.transport.transport_local import LocalAdapter
from veridoc_core.transport.transport_kafka import KafkaAdapter


def transport_factory(mode: str | None = None):
    """
    Event egress for ledger events.

      - "local" → in-process pub/sub (default)
      - "kafka" → Kafka producer
      - "none"  → no egress
    """
    mode = (mode or os.getenv("VERIDOC_EVENT_TRANSPORT", "local")).lower()

    if mode == "none":
        return None

    if mode == "kafka":
        return KafkaAdapter(
            brokers=os.getenv("KAFKA_BROKERS", "localhost:9092"),
            enabled=os.getenv("KAFKA_ENABLED", "1") == "1",
        )

    return LocalAdapter()


__all__ = ["BaseTransport", "LocalAdapter", "KafkaAdapter", "transport_factory"]

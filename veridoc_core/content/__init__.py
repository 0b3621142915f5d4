# veridoc_core/content/__init__.py

from .provider import DocumentStore
from .providers.memory_provider import InMemoryDocumentStore
from .providers.ipfs_provider import IPFSDocumentStore
from .manifest import Manifest
from .workflow import EncryptedContentWorkflow
from veridoc_core.constants import DEFAULT_DOCSTORE, DEFAULT_IPFS_URL, DEFAULT_STORE_TIMEOUT
import os


def load_document_store(config: dict | None = None) -> DocumentStore:
    """
    Factory resolver for the content-addressed document store.

        - memory (default)
        - ipfs
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("VERIDOC_DOCSTORE", DEFAULT_DOCSTORE)

    if provider == "memory":
        return InMemoryDocumentStore()

    if provider == "ipfs":
        return IPFSDocumentStore(
            base_url=config.get("ipfs_url") or os.getenv("VERIDOC_IPFS_URL", DEFAULT_IPFS_URL),
            timeout=float(config.get("timeout") or os.getenv("VERIDOC_STORE_TIMEOUT", DEFAULT_STORE_TIMEOUT)),
            token=config.get("token") or os.getenv("VERIDOC_IPFS_TOKEN"),
        )

    raise ValueError(f"Unknown document store: {provider}")


__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "IPFSDocumentStore",
    "Manifest",
    "EncryptedContentWorkflow",
    "load_document_store",
]

"""
veridoc_core.content.workflow
-----------------------------
Encrypted content workflow: turns raw documents into a manifest content
address, and checks retrieved content against a reference copy.

    store_documents:  encrypt+put each document (concurrently)
                      -> join -> build manifest -> encrypt+put manifest
    fetch_and_validate: get+decrypt manifest -> get+decrypt first document
                      -> compare SHA-256 digests

Publishing is all-or-nothing: the manifest is put only after every document
put succeeded. Blobs from a failed attempt may stay in the store unreferenced.
"""

from __future__ import annotations
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, List, Sequence
import hmac
import time

from veridoc_core import crypto
from veridoc_core.constants import DEFAULT_MAX_WORKERS, DEFAULT_PUT_RETRIES, DEFAULT_RETRY_BACKOFF
from veridoc_core.errors import (
    DecryptionError,
    InvalidArgumentError,
    NotFoundError,
    StoreUnavailableError,
)
from veridoc_core.logger import get_logger
from veridoc_core.utils import now_ts, sha256
from .manifest import Manifest
from .provider import DocumentStore

log = get_logger("Veridoc.Content")


class EncryptedContentWorkflow:
    def __init__(
        self,
        store: DocumentStore,
        max_workers: int = DEFAULT_MAX_WORKERS,
        put_retries: int = DEFAULT_PUT_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        clock: Callable[[], str] = now_ts,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.max_workers = max(1, max_workers)
        self.put_retries = max(0, put_retries)
        self.retry_backoff = retry_backoff
        self.clock = clock
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------
    def store_documents(self, documents: Sequence[bytes], recipient_public_key: bytes) -> str:
        """Encrypt and store ``documents``; return the address of the encrypted manifest."""
        docs = list(documents)
        if not docs:
            raise InvalidArgumentError("at least one document is required")
        if not all(isinstance(d, (bytes, bytearray)) for d in docs):
            raise InvalidArgumentError("documents must be bytes")

        addresses = self._store_all(docs, recipient_public_key)

        manifest = Manifest(document_addresses=addresses, created_at=self.clock())
        manifest_address = self._put(crypto.encrypt(manifest.to_bytes(), recipient_public_key))
        log.info(f"[CONTENT] manifest stored address={manifest_address} documents={len(addresses)}")
        return manifest_address

    def _store_all(self, docs: List[bytes], recipient_public_key: bytes) -> List[str]:
        workers = min(self.max_workers, len(docs))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="veridoc-put") as pool:
            futures = [pool.submit(self._seal_and_put, d, recipient_public_key) for d in docs]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            failed = next((f for f in futures if f in done and f.exception() is not None), None)
            if failed is not None:
                for f in pending:
                    f.cancel()
                log.error(f"[CONTENT] document store failed; no manifest published: {failed.exception()}")
                raise failed.exception()
            return [f.result() for f in futures]

    def _seal_and_put(self, document: bytes, recipient_public_key: bytes) -> str:
        return self._put(crypto.encrypt(document, recipient_public_key))

    def _put(self, blob: bytes) -> str:
        attempt = 0
        while True:
            try:
                address = self.store.put(blob)
                log.debug(f"[CONTENT PUT] {address} bytes={len(blob)}")
                return address
            except StoreUnavailableError as e:
                if attempt >= self.put_retries:
                    raise
                delay = self.retry_backoff * (2 ** attempt)
                attempt += 1
                log.warning(f"[CONTENT PUT] retry {attempt}/{self.put_retries} in {delay:.2f}s: {e}")
                self._sleep(delay)

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------
    def fetch_manifest(self, manifest_address: str, recipient_private_key: bytes) -> Manifest:
        blob = self.store.get(manifest_address)
        return Manifest.from_bytes(crypto.decrypt(blob, recipient_private_key))

    def fetch_document(self, address: str, recipient_private_key: bytes) -> bytes:
        return crypto.decrypt(self.store.get(address), recipient_private_key)

    def fetch_documents(self, manifest_address: str, recipient_private_key: bytes) -> List[bytes]:
        manifest = self.fetch_manifest(manifest_address, recipient_private_key)
        return [self.fetch_document(a, recipient_private_key) for a in manifest.document_addresses]

    def fetch_and_validate(
        self,
        manifest_address: str,
        recipient_private_key: bytes,
        reference_plaintext: bytes,
    ) -> bool:
        """
        True iff the first document behind ``manifest_address`` decrypts to
        exactly ``reference_plaintext``. Any retrieval or decryption failure
        means validation could not be established and yields False.
        """
        try:
            manifest = self.fetch_manifest(manifest_address, recipient_private_key)
            document = self.fetch_document(manifest.document_addresses[0], recipient_private_key)
        except (DecryptionError, NotFoundError, StoreUnavailableError) as e:
            log.warning(f"[CONTENT] validation not established for {manifest_address}: {e}")
            return False

        return hmac.compare_digest(sha256(document), sha256(bytes(reference_plaintext)))

# veridoc_core/content/providers/ipfs_provider.py
from typing import Optional
import requests

from veridoc_core.content.provider import DocumentStore
from veridoc_core.errors import NotFoundError, StoreUnavailableError
from veridoc_core.logger import get_logger

log = get_logger("Veridoc.Content.IPFS")

# substrings of IPFS RPC error messages that mean "no such content"
_NOT_FOUND_MARKERS = ("not found", "invalid path", "invalid cid", "failed to decode", "no link named")


class IPFSDocumentStore(DocumentStore):
    """
    Document store backed by an IPFS node's HTTP RPC API (or a compatible
    pinning service).

    Features:
    - Every call carries the configured timeout; expiry is StoreUnavailableError.
    - Optional Bearer token for hosted pinning gateways.
    - Blobs are added pinned, as CIDv1.
    """

    name = "ipfs"

    def __init__(self, base_url: str, timeout: float = 10.0, token: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token

    def _headers(self) -> dict:
        headers = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _call(self, endpoint: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/api/v0/{endpoint}"
        try:
            return requests.post(url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise StoreUnavailableError(f"IPFS {endpoint} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise StoreUnavailableError(f"IPFS {endpoint} failed: {e}") from e

    @staticmethod
    def _error_message(res: requests.Response) -> str:
        try:
            body = res.json()
        except ValueError:
            return res.text
        # gateways in front of a node may answer with any JSON shape
        if isinstance(body, dict):
            return str(body.get("Message", res.text))
        return res.text

    # ------------------------------------------------------------------
    # DocumentStore
    # ------------------------------------------------------------------
    def put(self, blob: bytes) -> str:
        res = self._call(
            "add",
            params={"pin": "true", "cid-version": "1"},
            files={"file": ("blob", bytes(blob))},
        )
        if not res.ok:
            msg = self._error_message(res)
            log.error(f"[IPFS PUT] {res.status_code}: {msg}")
            raise StoreUnavailableError(f"IPFS add rejected ({res.status_code}): {msg}")
        try:
            address = res.json()["Hash"]
        except (ValueError, KeyError, TypeError) as e:
            raise StoreUnavailableError("IPFS add returned an unexpected response") from e
        log.debug(f"[IPFS PUT] {address} bytes={len(blob)}")
        return address

    def get(self, address: str) -> bytes:
        if not address:
            raise NotFoundError("empty content address")
        res = self._call("cat", params={"arg": address})
        if res.ok:
            log.debug(f"[IPFS GET] {address} bytes={len(res.content)}")
            return res.content

        msg = self._error_message(res)
        if any(marker in msg.lower() for marker in _NOT_FOUND_MARKERS) or res.status_code == 404:
            raise NotFoundError(f"IPFS has no content at {address}: {msg}")
        log.error(f"[IPFS GET] {res.status_code}: {msg}")
        raise StoreUnavailableError(f"IPFS cat failed ({res.status_code}): {msg}")

    def healthz(self) -> dict:
        try:
            res = self._call("version")
        except StoreUnavailableError as e:
            return {"status": "down", "store": self.name, "error": str(e)}
        return {"status": "ok" if res.ok else "degraded", "store": self.name}

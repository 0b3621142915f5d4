import hashlib
import json
import pytest
import requests

from veridoc_core.content import EncryptedContentWorkflow, IPFSDocumentStore
from veridoc_core.crypto import x25519_generate
from veridoc_core.errors import NotFoundError, StoreUnavailableError


class FakeResponse:
    def __init__(self, status_code=200, content=b"", payload=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self.content = content if payload is None else json.dumps(payload).encode()
        self.text = self.content.decode("utf-8", errors="replace")

    def json(self):
        return json.loads(self.text)


class FakeIPFSNode:
    """Just enough of /api/v0/add and /api/v0/cat to exercise the adapter."""

    def __init__(self):
        self.blobs = {}
        self.requests = []

    def __call__(self, url, headers=None, timeout=None, params=None, files=None):
        self.requests.append({"url": url, "headers": headers, "timeout": timeout, "params": params})
        if url.endswith("/api/v0/add"):
            blob = files["file"][1]
            cid = "bafk" + hashlib.sha256(blob).hexdigest()[:40]
            self.blobs[cid] = blob
            return FakeResponse(payload={"Name": cid, "Hash": cid, "Size": str(len(blob))})
        if url.endswith("/api/v0/cat"):
            cid = params["arg"]
            if cid not in self.blobs:
                return FakeResponse(500, payload={"Message": "merkledag: not found", "Code": 0, "Type": "error"})
            return FakeResponse(content=self.blobs[cid])
        return FakeResponse(payload={"Version": "0.30.0"})


@pytest.fixture
def node(monkeypatch):
    fake = FakeIPFSNode()
    monkeypatch.setattr(requests, "post", fake)
    return fake


def test_put_get_roundtrip(node):
    store = IPFSDocumentStore("http://ipfs.local:5001", timeout=2.5)
    address = store.put(b"ciphertext")
    assert address.startswith("bafk")
    assert store.get(address) == b"ciphertext"

    add = node.requests[0]
    assert add["params"] == {"pin": "true", "cid-version": "1"}
    assert add["timeout"] == 2.5
    assert "Authorization" not in add["headers"]


def test_bearer_token_is_sent(node):
    store = IPFSDocumentStore("http://ipfs.local:5001", token="jwt-123")
    store.put(b"x")
    assert node.requests[-1]["headers"]["Authorization"] == "Bearer jwt-123"


def test_get_unknown_address(node):
    store = IPFSDocumentStore("http://ipfs.local:5001")
    with pytest.raises(NotFoundError):
        store.get("bafkmissing")
    with pytest.raises(NotFoundError):
        store.get("")


def test_server_error_is_unavailable(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(502, content=b"bad gateway"))
    store = IPFSDocumentStore("http://ipfs.local:5001")
    with pytest.raises(StoreUnavailableError):
        store.get("bafkanything")
    with pytest.raises(StoreUnavailableError):
        store.put(b"x")


def test_malformed_add_response_is_unavailable(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(200, content=b"<html>"))
    with pytest.raises(StoreUnavailableError):
        IPFSDocumentStore("http://ipfs.local:5001").put(b"x")


@pytest.mark.parametrize("body", [["gateway error"], "upstream down", 42, None])
def test_non_object_json_error_body_is_unavailable(monkeypatch, body):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(500, payload=body))
    store = IPFSDocumentStore("http://ipfs.local:5001")
    with pytest.raises(StoreUnavailableError):
        store.get("bafkanything")
    with pytest.raises(StoreUnavailableError):
        store.put(b"x")

    priv, _ = x25519_generate()
    assert not EncryptedContentWorkflow(store, put_retries=0).fetch_and_validate("bafkanything", priv, b"doc")


@pytest.mark.parametrize("exc", [requests.Timeout("slow"), requests.ConnectionError("refused")])
def test_transport_failures_are_unavailable(monkeypatch, exc):
    def fail(*args, **kwargs):
        raise exc

    monkeypatch.setattr(requests, "post", fail)
    store = IPFSDocumentStore("http://ipfs.local:5001", timeout=0.1)
    with pytest.raises(StoreUnavailableError):
        store.put(b"x")
    with pytest.raises(StoreUnavailableError):
        store.get("bafkanything")
    assert store.healthz()["status"] == "down"


def test_healthz(node):
    assert IPFSDocumentStore("http://ipfs.local:5001").healthz() == {"status": "ok", "store": "ipfs"}


def test_workflow_over_ipfs(node):
    priv, pub = x25519_generate()
    workflow = EncryptedContentWorkflow(IPFSDocumentStore("http://ipfs.local:5001"))
    address = workflow.store_documents([b"scan-1", b"scan-2"], pub)

    assert workflow.fetch_and_validate(address, priv, b"scan-1")
    assert not workflow.fetch_and_validate(address, priv, b"scan-2")
    assert not workflow.fetch_and_validate("bafkmissing", priv, b"scan-1")

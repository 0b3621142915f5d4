"""
veridoc_core.crypto
-------------------
Cryptographic primitives for veridoc:

- Ed25519: principal keys, transaction signatures, address derivation
- X25519 + HKDF + AES-GCM: hybrid encryption of documents and manifests
- Content cipher: encrypt() / decrypt() over opaque byte payloads

Content encryption is hybrid on purpose. Encrypting whole documents directly
under an asymmetric key is unsafe once a document exceeds the scheme's block
size, so each call generates an ephemeral X25519 key, agrees a shared secret
with the recipient's X25519 public key, derives an AES-256-GCM key through
HKDF-SHA256, and seals the payload with it. Payload size is bounded only by
AES-GCM's single-call limit.

Ciphertext layout:

    version (1) || ephemeral_pub (32) || nonce (12) || ciphertext + tag

The 33-byte header is bound as associated data. A fresh ephemeral key and
nonce per call make ciphertext non-deterministic; never compare ciphertexts.
"""

from __future__ import annotations
from typing import Tuple, Optional
from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives.asymmetric import ed25519, x25519
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
import os

from .constants import CIPHER_VERSION, HKDF_INFO, MAX_PAYLOAD_BYTES
from .errors import DecryptionError, InvalidArgumentError
from .utils import principal_address

_KEY_LEN = 32
_NONCE_LEN = 12
_TAG_LEN = 16
_HEADER_LEN = 1 + _KEY_LEN


# --------- Ed25519 (sign/verify) ----------
def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = ed25519.Ed25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()

def ed25519_sign(priv_raw: bytes, data: bytes) -> bytes:
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw)
    return sk.sign(data)

def ed25519_verify(pub_raw: bytes, sig: bytes, data: bytes) -> bool:
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(pub_raw).verify(sig, data)
        return True
    except (InvalidSignature, ValueError):
        return False

def generate_principal() -> Tuple[bytes, bytes, str]:
    """New Ed25519 keypair plus its principal address."""
    priv, pub = ed25519_generate()
    return priv, pub, principal_address(pub)


# --------- X25519 + HKDF + AES-GCM ----------
def x25519_generate() -> Tuple[bytes, bytes]:
    sk = x25519.X25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()

def derive_key(sender_priv: bytes, recipient_pub: bytes, salt: Optional[bytes] = None, info: bytes = HKDF_INFO) -> bytes:
    sk = x25519.X25519PrivateKey.from_private_bytes(sender_priv)
    shared = sk.exchange(x25519.X25519PublicKey.from_public_bytes(recipient_pub))
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=salt, info=info)
    return hkdf.derive(shared)  # 256-bit AEAD key

def aead_encrypt(key: bytes, plaintext: bytes, aad: Optional[bytes] = None) -> Tuple[bytes, bytes]:
    aes = AESGCM(key)
    nonce = os.urandom(_NONCE_LEN)
    ct = aes.encrypt(nonce, plaintext, aad)
    return nonce, ct

def aead_decrypt(key: bytes, nonce: bytes, ciphertext: bytes, aad: Optional[bytes] = None) -> bytes:
    aes = AESGCM(key)
    return aes.decrypt(nonce, ciphertext, aad)


# --------- Content cipher ----------
def encrypt(plaintext: bytes, recipient_public_key: bytes) -> bytes:
    """Seal ``plaintext`` for the holder of the X25519 private key matching ``recipient_public_key``."""
    if not isinstance(plaintext, (bytes, bytearray)):
        raise InvalidArgumentError("plaintext must be bytes")
    if len(plaintext) > MAX_PAYLOAD_BYTES:
        raise InvalidArgumentError(
            f"payload of {len(plaintext)} bytes exceeds the {MAX_PAYLOAD_BYTES}-byte limit; chunk it"
        )
    try:
        x25519.X25519PublicKey.from_public_bytes(recipient_public_key)
    except (ValueError, TypeError) as e:
        raise InvalidArgumentError(f"invalid recipient public key: {e}") from e

    eph_priv, eph_pub = x25519_generate()
    header = bytes([CIPHER_VERSION]) + eph_pub
    key = derive_key(eph_priv, recipient_public_key, salt=eph_pub)
    nonce, ct = aead_encrypt(key, bytes(plaintext), aad=header)
    return header + nonce + ct

def decrypt(ciphertext: bytes, recipient_private_key: bytes) -> bytes:
    """Open a payload produced by :func:`encrypt`. Raises DecryptionError on any mismatch."""
    if not isinstance(ciphertext, (bytes, bytearray)):
        raise DecryptionError("ciphertext must be bytes")
    if len(ciphertext) < _HEADER_LEN + _NONCE_LEN + _TAG_LEN:
        raise DecryptionError("ciphertext truncated")
    if ciphertext[0] != CIPHER_VERSION:
        raise DecryptionError(f"unsupported cipher version {ciphertext[0]}")

    header = bytes(ciphertext[:_HEADER_LEN])
    eph_pub = header[1:]
    nonce = bytes(ciphertext[_HEADER_LEN:_HEADER_LEN + _NONCE_LEN])
    body = bytes(ciphertext[_HEADER_LEN + _NONCE_LEN:])
    try:
        key = derive_key(recipient_private_key, eph_pub, salt=eph_pub)
        return aead_decrypt(key, nonce, body, aad=header)
    except InvalidTag as e:
        raise DecryptionError("authentication failed: wrong key or tampered ciphertext") from e
    except (ValueError, TypeError) as e:
        raise DecryptionError(f"malformed key or ciphertext: {e}") from e

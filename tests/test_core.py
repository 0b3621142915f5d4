import os
import pytest

from veridoc_core.crypto import (
    decrypt, encrypt, ed25519_generate, ed25519_sign, ed25519_verify,
    generate_principal, x25519_generate,
)
from veridoc_core.errors import DecryptionError, InvalidArgumentError
from veridoc_core.utils import check_principal, principal_address
from veridoc_core.constants import ZERO_PRINCIPAL


def test_sign_verify():
    priv, pub = ed25519_generate()
    sig = ed25519_sign(priv, b"payload")
    assert ed25519_verify(pub, sig, b"payload")
    assert not ed25519_verify(pub, sig, b"other")


def test_encrypt_decrypt():
    priv, pub = x25519_generate()
    doc = b"passport scan"
    assert decrypt(encrypt(doc, pub), priv) == doc


def test_encrypt_empty_payload():
    priv, pub = x25519_generate()
    assert decrypt(encrypt(b"", pub), priv) == b""


def test_encrypt_is_non_deterministic():
    _, pub = x25519_generate()
    assert encrypt(b"same", pub) != encrypt(b"same", pub)


def test_encrypt_large_document():
    # well beyond any asymmetric block size
    priv, pub = x25519_generate()
    doc = os.urandom(2 * 1024 * 1024)
    assert decrypt(encrypt(doc, pub), priv) == doc


def test_decrypt_wrong_key():
    _, pub = x25519_generate()
    other_priv, _ = x25519_generate()
    with pytest.raises(DecryptionError):
        decrypt(encrypt(b"secret", pub), other_priv)


def test_decrypt_truncated_and_tampered():
    priv, pub = x25519_generate()
    ct = encrypt(b"secret document", pub)
    with pytest.raises(DecryptionError):
        decrypt(ct[:20], priv)
    with pytest.raises(DecryptionError):
        decrypt(ct[:-1], priv)
    tampered = bytearray(ct)
    tampered[-5] ^= 0x01
    with pytest.raises(DecryptionError):
        decrypt(bytes(tampered), priv)


def test_decrypt_unknown_version():
    priv, pub = x25519_generate()
    ct = bytearray(encrypt(b"x", pub))
    ct[0] = 99
    with pytest.raises(DecryptionError):
        decrypt(bytes(ct), priv)


def test_encrypt_rejects_bad_public_key():
    with pytest.raises(InvalidArgumentError):
        encrypt(b"x", b"short")


def test_principal_address():
    _, pub, address = generate_principal()
    assert address == principal_address(pub)
    assert address.startswith("0x") and len(address) == 42
    assert check_principal(address) == address


def test_check_principal_rejects_malformed():
    for bad in ["", "0x123", "abc", None, "0x" + "G" * 40]:
        with pytest.raises(InvalidArgumentError):
            check_principal(bad)
    with pytest.raises(InvalidArgumentError):
        check_principal(ZERO_PRINCIPAL, allow_zero=False)

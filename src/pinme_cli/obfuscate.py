# Author: PB and Claude
# Date: 2026-10-18
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ---
# src/pinme_cli/obfuscate.py

"""
Preview-link token for a content hash.

The token is RC4 in the OpenSSL "Salted__" passphrase envelope (the format
CryptoJS produces and the preview gateway decrypts), made URL-safe. The salt
is derived from the secret and the plaintext, so a given hash always maps to
the same token.
"""

import base64
import hashlib
import hmac
import logging

from Crypto.Cipher import ARC4

logger = logging.getLogger(__name__)

SALT_HEADER = b"Salted__"
SALT_SIZE = 8
KEY_SIZE = 32


def _evp_bytes_to_key(passphrase: bytes, salt: bytes, size: int = KEY_SIZE) -> bytes:
    """OpenSSL EVP_BytesToKey with MD5, one iteration, no IV."""
    derived = b""
    block = b""
    while len(derived) < size:
        block = hashlib.md5(block + passphrase + salt).digest()
        derived += block
    return derived[:size]


def _encrypt(plaintext: str, secret_key: str) -> str:
    data = plaintext.encode("utf-8")
    passphrase = secret_key.encode("utf-8")
    salt = hmac.new(passphrase, data, hashlib.sha256).digest()[:SALT_SIZE]
    cipher = ARC4.new(_evp_bytes_to_key(passphrase, salt))
    blob = SALT_HEADER + salt + cipher.encrypt(data)
    return base64.b64encode(blob).decode("ascii")


def obfuscate(content_hash: str, secret_key: str = None, device_id: str = None) -> str:
    """
    Derive a URL-safe opaque token from a content hash.

    Args:
        content_hash: CID returned by the upload
        secret_key: Shared secret; without it the raw hash is returned
        device_id: Optional device identifier appended as "<hash>-<device_id>"

    Returns:
        Token using only [A-Za-z0-9_-], or content_hash if encryption fails
    """
    if not secret_key:
        logger.warning("No secret key configured, preview link uses the raw hash")
        return content_hash

    combined = f"{content_hash}-{device_id}" if device_id else content_hash
    try:
        encrypted = _encrypt(combined, secret_key)
    except (ValueError, TypeError) as e:
        logger.warning(f"Encryption error: {e}")
        return content_hash

    return encrypted.replace("+", "-").replace("/", "_").rstrip("=")

"""Passphrase based encryption for data exports.

A 256-bit key is derived from the passphrase with PBKDF2-HMAC-SHA256 and a
random salt; the JSON payload is sealed with AES-256-GCM. Every binary field
of the envelope is base64 encoded::

    {"ciphertext": ..., "iv": ..., "authTag": ..., "salt": ...}
"""

import base64
import json
import os

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

KEY_LENGTH = 32
IV_LENGTH = 12
SALT_LENGTH = 16
TAG_LENGTH = 16
PBKDF2_ITERATIONS = 120000


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def derive_key(passphrase: str, salt: bytes = None):
    """Return ``(key, salt)``; a fresh salt is drawn when none is given."""
    salt = salt or os.urandom(SALT_LENGTH)
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=salt, iterations=PBKDF2_ITERATIONS)
    return kdf.derive(passphrase.encode('utf-8')), salt


def encrypt_payload(payload, passphrase: str) -> dict:
    key, salt = derive_key(passphrase)
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, json.dumps(payload).encode('utf-8'), None)
    # AESGCM appends the tag to the ciphertext.
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return {'ciphertext': _b64(ciphertext), 'iv': _b64(iv), 'authTag': _b64(tag), 'salt': _b64(salt)}


def decrypt_payload(envelope: dict, passphrase: str):
    """Open an envelope made by :func:`encrypt_payload`.

    Raises ``cryptography.exceptions.InvalidTag`` for a wrong passphrase or
    tampered data.
    """
    key, _ = derive_key(passphrase, base64.b64decode(envelope['salt']))
    sealed = base64.b64decode(envelope['ciphertext']) + base64.b64decode(envelope['authTag'])
    plain = AESGCM(key).decrypt(base64.b64decode(envelope['iv']), sealed, None)
    return json.loads(plain.decode('utf-8'))

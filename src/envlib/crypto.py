"""Decoding of `ENC(...)` values.

Two modes are supported:

- BASE64 (no key): the text between `ENC(` and `)` is plain base64.
- AES (key given): the whole wrapped text, envelope letters included, is
  decoded as base64. The decoder discards the parentheses, so the leading
  `ENC`/`enc` are the first three characters of the base64 payload. The
  decoded bytes are a 16-byte IV followed by AES-CFB ciphertext keyed with the
  raw UTF-8 bytes of the key (16, 24 or 32 bytes).

`encrypt` produces values in exactly that framing.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.decrepit.ciphers.modes import CFB
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

from .errors import (
    Base64DecodeError,
    CipherInitError,
    NotEncryptedError,
    TooShortError,
)

log = logging.getLogger(__name__)

AES_BLOCK_SIZE = 16
ENVELOPE_PREFIXES = ("ENC(", "enc(")

_B64_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


class CipherMode(str, Enum):
    BASE64 = "base64"
    AES = "aes"


@dataclass(frozen=True)
class Envelope:
    wrapped: str
    payload: str
    mode: CipherMode


def is_encrypted(value: Any) -> bool:
    s = str(value).strip()
    return s.startswith(ENVELOPE_PREFIXES) and s.endswith(")")


def parse_envelope(wrapped: str, key: str = "") -> Envelope:
    if not is_encrypted(wrapped):
        raise NotEncryptedError(wrapped)
    s = wrapped.strip()
    return Envelope(
        wrapped=s,
        payload=s[len("ENC("):-1],
        mode=CipherMode.AES if key else CipherMode.BASE64,
    )


def _aes_cipher(key: str, iv: bytes) -> Cipher:
    try:
        return Cipher(algorithms.AES(key.encode("utf-8")), CFB(iv), backend=default_backend())
    except ValueError as e:
        raise CipherInitError(f"failed to create cipher: {e}") from e


def decrypt_bytes(wrapped: str, key: str = "") -> bytes:
    envelope = parse_envelope(wrapped, key)

    if envelope.mode is CipherMode.BASE64:
        try:
            return base64.b64decode(envelope.payload, validate=True)
        except binascii.Error as e:
            raise Base64DecodeError(f"failed to decode base64 payload: {e}") from e

    try:
        data = base64.b64decode(envelope.wrapped)
    except binascii.Error as e:
        raise Base64DecodeError(f"failed to decode AES payload: {e}") from e

    if len(data) < AES_BLOCK_SIZE:
        raise TooShortError(
            f"encrypted data is too short for AES ({len(data)} < {AES_BLOCK_SIZE} bytes)"
        )

    iv, ciphertext = data[:AES_BLOCK_SIZE], data[AES_BLOCK_SIZE:]
    decryptor = _aes_cipher(key, iv).decryptor()
    return decryptor.update(ciphertext) + decryptor.finalize()


def decrypt(wrapped: str, key: str = "") -> str:
    """Return the plaintext of an enveloped value as text."""
    plaintext = decrypt_bytes(wrapped, key)
    log.debug("Decrypted %d bytes (%s)", len(plaintext), "aes" if key else "base64")
    return plaintext.decode("utf-8", errors="replace")


def _framed_iv(prefix: str) -> bytes:
    # The first 18 bits of the IV must encode to `prefix` in base64.
    head = base64.b64decode(prefix + random.SystemRandom().choice(_B64_ALPHABET))
    return head + os.urandom(AES_BLOCK_SIZE - len(head))


def encrypt(plaintext: str, key: str = "", prefix: str = "ENC") -> str:
    """Wrap `plaintext` in an envelope that `decrypt` accepts with the same key."""
    if prefix not in ("ENC", "enc"):
        raise ValueError(f"envelope prefix must be 'ENC' or 'enc', got {prefix!r}")

    data = plaintext.encode("utf-8")
    if not key:
        return f"{prefix}({base64.b64encode(data).decode('ascii')})"

    iv = _framed_iv(prefix)
    encryptor = _aes_cipher(key, iv).encryptor()
    encoded = base64.b64encode(iv + encryptor.update(data) + encryptor.finalize()).decode("ascii")
    return f"{prefix}({encoded[len(prefix):]})"

"""AES-CBC with PKCS#7 padding and MD5 helpers."""

from __future__ import annotations

import base64
import hashlib

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

BLOCK_SIZE = 16


def _as_bytes(value: bytes | str) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def pkcs7_pad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    padding = block_size - len(data) % block_size
    return bytes(data) + bytes([padding]) * padding


def pkcs7_unpad(data: bytes) -> bytes:
    if not data:
        raise ValueError("cannot unpad empty data")
    padding = data[-1]
    if padding > len(data):
        raise ValueError("invalid padding")
    return bytes(data[: len(data) - padding])


def aes_encrypt(data: bytes, key: bytes | str, iv: bytes | str) -> bytes:
    """Encrypt data with AES-CBC after PKCS#7 padding."""
    cipher = Cipher(algorithms.AES(_as_bytes(key)), modes.CBC(_as_bytes(iv)[:BLOCK_SIZE]))
    encryptor = cipher.encryptor()
    return encryptor.update(pkcs7_pad(_as_bytes(data))) + encryptor.finalize()


def aes_decrypt(data: bytes, key: bytes | str, iv: bytes | str) -> bytes:
    """Decrypt AES-CBC data and strip its PKCS#7 padding."""
    cipher = Cipher(algorithms.AES(_as_bytes(key)), modes.CBC(_as_bytes(iv)[:BLOCK_SIZE]))
    decryptor = cipher.decryptor()
    plain = decryptor.update(bytes(data)) + decryptor.finalize()
    return pkcs7_unpad(plain)


def encrypt_by_aes(key: bytes | str, iv: bytes | str, data: bytes | str) -> str:
    """Encrypt and return standard base64 text."""
    return base64.b64encode(aes_encrypt(_as_bytes(data), key, iv)).decode("ascii")


def decrypt_by_aes(key: bytes | str, iv: bytes | str, data: str | bytes) -> bytes:
    """Decode standard base64 text and decrypt it."""
    raw = base64.b64decode(_as_bytes(data), validate=True)
    return aes_decrypt(raw, key, iv)


def string_md5(s: str) -> str:
    return hashlib.md5(s.encode("utf-8")).hexdigest()
import base64

import pytest

from airplaytv.crypto import (
    aes_decrypt,
    aes_encrypt,
    decrypt_by_aes,
    encrypt_by_aes,
    pkcs7_pad,
    pkcs7_unpad,
    string_md5,
)

KEY = b"9b0d6d401fc5c57f"
IV = b"1234567890983456"


def test_pad_empty_is_full_block():
    assert pkcs7_pad(b"", 16) == bytes([16]) * 16


@pytest.mark.parametrize("size", [0, 1, 15, 16, 17, 40])
def test_pad_unpad_round_trip(size):
    data = bytes(range(size))
    padded = pkcs7_pad(data, 16)
    assert len(padded) % 16 == 0
    assert pkcs7_unpad(padded) == data


def test_unpad_empty_raises():
    with pytest.raises(ValueError):
        pkcs7_unpad(b"")


def test_unpad_oversized_padding_raises():
    with pytest.raises(ValueError):
        pkcs7_unpad(b"\x01\x09")


def test_aes_round_trip():
    plain = b'md5.enc.Utf8.parse("9b0d6d401fc5c57f").toString()'
    cipher = aes_encrypt(plain, KEY, IV)
    assert len(cipher) % 16 == 0
    assert cipher != plain
    assert aes_decrypt(cipher, KEY, IV) == plain


def test_base64_round_trip_with_text_key():
    encoded = encrypt_by_aes(KEY.decode(), IV.decode(), "视频 url")
    assert len(base64.b64decode(encoded)) % 16 == 0
    assert decrypt_by_aes(KEY, IV, encoded) == "视频 url".encode("utf-8")


def test_decrypt_invalid_base64_raises():
    with pytest.raises(ValueError):
        decrypt_by_aes(KEY, IV, "not*base64")


def test_invalid_key_size_raises():
    with pytest.raises(ValueError):
        aes_encrypt(b"data", b"short", IV)


def test_decrypt_unaligned_data_raises():
    with pytest.raises(ValueError):
        aes_decrypt(b"abc", KEY, IV)


def test_md5_known_values():
    assert string_md5("") == "d41d8cd98f00b204e9800998ecf8427e"
    assert string_md5("abc") == "900150983cd24fb0d6963f7d28e17f72"


def test_md5_shape():
    digest = string_md5("厂长资源")
    assert len(digest) == 32
    assert digest == digest.lower()
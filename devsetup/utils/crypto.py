"""AES-256-CBC file encryption in the ``openssl enc`` container format.

Files written here decrypt with
``openssl enc -d -aes-256-cbc -md sha256 -in <file> -k <password>``:
``Salted__`` + 8-byte salt + PKCS#7-padded ciphertext, key and IV derived with
EVP_BytesToKey over SHA-256 (one iteration).
"""
from __future__ import annotations
import hashlib
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

MAGIC = b"Salted__"
SALT_LEN = 8
KEY_LEN = 32
IV_LEN = 16
CHUNK = 1024 * 1024


class DecryptionError(ValueError):
    pass


def evp_bytes_to_key(password: bytes, salt: bytes, key_len: int = KEY_LEN, iv_len: int = IV_LEN) -> tuple[bytes, bytes]:
    derived = b""
    block = b""
    while len(derived) < key_len + iv_len:
        block = hashlib.sha256(block + password + salt).digest()
        derived += block
    return derived[:key_len], derived[key_len:key_len + iv_len]


def encrypt_file(src: str, dst: str, password: str, salt: bytes | None = None) -> None:
    salt = salt or os.urandom(SALT_LEN)
    key, iv = evp_bytes_to_key(password.encode("utf-8"), salt)
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    with open(src, "rb") as fin, open(dst, "wb") as fout:
        fout.write(MAGIC + salt)
        for chunk in iter(lambda: fin.read(CHUNK), b""):
            fout.write(encryptor.update(padder.update(chunk)))
        fout.write(encryptor.update(padder.finalize()) + encryptor.finalize())


def decrypt_file(src: str, dst: str, password: str) -> None:
    with open(src, "rb") as fin:
        head = fin.read(len(MAGIC) + SALT_LEN)
        if len(head) < len(MAGIC) + SALT_LEN or not head.startswith(MAGIC):
            raise DecryptionError("not an openssl salted file")
        key, iv = evp_bytes_to_key(password.encode("utf-8"), head[len(MAGIC):])
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        with open(dst, "wb") as fout:
            try:
                for chunk in iter(lambda: fin.read(CHUNK), b""):
                    fout.write(unpadder.update(decryptor.update(chunk)))
                fout.write(unpadder.update(decryptor.finalize()) + unpadder.finalize())
            except ValueError as e:
                raise DecryptionError("wrong password or corrupted file") from e

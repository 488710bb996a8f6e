import struct

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tarcrypt.utils.dataModels import NONCE_LEN
from tarcrypt.utils.errors import CipherFailure


def chunk_nonce(base_nonce: bytes, index: int) -> bytes:
    """base_nonce XOR index, so no two frames of one stream share a nonce."""
    index_bytes = index.to_bytes(NONCE_LEN, "big")
    return bytes(a ^ b for a, b in zip(base_nonce, index_bytes))


def chunk_aad(header: bytes, index: int, final: bool) -> bytes:
    # Binds every frame to the header, its position and whether it ends the stream
    return header + struct.pack(">QB", index, int(final))


def aead_encrypt(key: bytes, nonce: bytes, plaintext: bytes, aad: bytes | None = None) -> bytes:
    return AESGCM(key).encrypt(nonce, plaintext, aad)


def aead_decrypt(key: bytes, nonce: bytes, ct: bytes, aad: bytes | None = None) -> bytes:
    try:
        return AESGCM(key).decrypt(nonce, ct, aad)
    except InvalidTag as exc:
        raise CipherFailure("decryption failed: wrong passphrase or corrupt data") from exc

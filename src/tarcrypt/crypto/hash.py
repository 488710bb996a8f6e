from argon2.exceptions import HashingError
from argon2.low_level import hash_secret_raw, Type as Argon2Type
from cryptography.hazmat.primitives import hashes

from tarcrypt.utils.errors import CipherFailure


def sha3_512_bytes(data: bytes) -> bytes:
    digest = hashes.Hash(hashes.SHA3_512())
    digest.update(data)
    return digest.finalize()


def derive_key(passphrase: str, salt: bytes, t_cost: int, m_cost_kib: int, parallelism: int) -> bytes:
    """Stream key = Argon2id(SHA3-512(passphrase)) -> 32 bytes"""
    prehash = sha3_512_bytes(passphrase.encode("utf-8"))
    try:
        return hash_secret_raw(
            secret=prehash,
            salt=salt,
            time_cost=t_cost,
            memory_cost=m_cost_kib,
            parallelism=parallelism,
            hash_len=32,
            type=Argon2Type.ID,
        )
    except HashingError as exc:
        raise CipherFailure(f"key derivation failed: {exc}") from exc

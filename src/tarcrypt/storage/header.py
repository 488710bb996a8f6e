import struct

from typing import BinaryIO, Tuple

from tarcrypt.utils.dataModels import (
    MAX_M_COST_KiB,
    MAX_PARALLELISM,
    MAX_T_COST,
    STREAM_HDR_FMT,
    STREAM_HDR_SIZE,
    STREAM_MAGIC,
    STREAM_VERSION,
)
from tarcrypt.utils.errors import CipherFailure


def pack_header(t: int, m: int, p: int, salt: bytes, nonce: bytes) -> bytes:
    return struct.pack(STREAM_HDR_FMT, STREAM_MAGIC, STREAM_VERSION, t, m, p, salt, nonce)


def read_header(f: BinaryIO) -> Tuple[bytes, int, int, int, bytes, bytes]:
    """Read and check the stream header.

    Returns the raw header bytes (authenticated as part of every frame) followed
    by t_cost, m_cost (KiB), parallelism, salt and base nonce.
    """
    data = f.read(STREAM_HDR_SIZE)
    if len(data) < STREAM_HDR_SIZE:
        raise CipherFailure("not an encrypted archive: file is too small")
    magic, ver, t, m, p, salt, nonce = struct.unpack(STREAM_HDR_FMT, data)
    if magic != STREAM_MAGIC:
        raise CipherFailure("not an encrypted archive: invalid magic")
    if ver != STREAM_VERSION:
        raise CipherFailure(f"unsupported stream version {ver}")
    if not (1 <= t <= MAX_T_COST and 1 <= p <= MAX_PARALLELISM and 8 * p <= m <= MAX_M_COST_KiB):
        raise CipherFailure("corrupt header: key derivation parameters out of range")
    return data, t, m, p, salt, nonce

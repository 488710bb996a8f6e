"""
Chunked AES-256-GCM stream used by the native cipher.

Layout:
    header  : magic b"TCR1", version, Argon2 t/m/p, salt(16), base nonce(12)
    frame*  : u32 ciphertext length, u8 final flag, ciphertext || tag(16)

Frame i uses nonce = base_nonce XOR i and AAD = header || (i, final), so frames
cannot be reordered, dropped, or moved between streams. Exactly one frame, the
last, has final = 1; a stream without it was truncated.
"""
import logging
import os
import struct

from typing import BinaryIO

from tarcrypt.crypto.aead import aead_decrypt, aead_encrypt, chunk_aad, chunk_nonce
from tarcrypt.crypto.hash import derive_key
from tarcrypt.storage.header import pack_header, read_header
from tarcrypt.utils.dataModels import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_M_COST_KiB,
    DEFAULT_PARALLELISM,
    DEFAULT_T_COST,
    FRAME_HDR_FMT,
    FRAME_HDR_SIZE,
    MAX_FRAME_LEN,
    NONCE_LEN,
    SALT_LEN,
)
from tarcrypt.utils.errors import CipherFailure

logger = logging.getLogger(__name__)


def _read_exact(f: BinaryIO, n: int) -> bytes:
    buf = bytearray()
    while len(buf) < n:
        part = f.read(n - len(buf))
        if not part:
            break
        buf += part
    return bytes(buf)


class EncryptingWriter:
    """Write-only file object: plaintext in, encrypted frames out to `fileobj`.

    Nothing is finalised until close(); a writer dropped after an error leaves a
    stream with no final frame, which the reader rejects as truncated.
    """

    def __init__(
        self,
        fileobj: BinaryIO,
        passphrase: str,
        t_cost: int = DEFAULT_T_COST,
        m_cost_kib: int = DEFAULT_M_COST_KiB,
        parallelism: int = DEFAULT_PARALLELISM,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        if not 0 < chunk_size <= MAX_FRAME_LEN - 16:
            raise ValueError(f"chunk size out of range: {chunk_size}")
        salt = os.urandom(SALT_LEN)
        self._base_nonce = os.urandom(NONCE_LEN)
        self._header = pack_header(t_cost, m_cost_kib, parallelism, salt, self._base_nonce)
        self._key = derive_key(passphrase, salt, t_cost, m_cost_kib, parallelism)
        self._fileobj = fileobj
        self._chunk_size = chunk_size
        self._buf = bytearray()
        self._index = 0
        self.closed = False
        fileobj.write(self._header)

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        if self.closed:
            raise ValueError("write to closed stream")
        self._buf += data
        # Strictly greater: the tail is always left for the final frame in close()
        while len(self._buf) > self._chunk_size:
            self._emit(bytes(self._buf[: self._chunk_size]), final=False)
            del self._buf[: self._chunk_size]
        return len(data)

    def flush(self) -> None:
        self._fileobj.flush()

    def close(self) -> None:
        if self.closed:
            return
        self._emit(bytes(self._buf), final=True)
        self._buf.clear()
        self._fileobj.flush()
        self.closed = True
        logger.debug("encrypted stream closed after %d frame(s)", self._index)

    def _emit(self, chunk: bytes, final: bool) -> None:
        nonce = chunk_nonce(self._base_nonce, self._index)
        ct = aead_encrypt(self._key, nonce, chunk, chunk_aad(self._header, self._index, final))
        self._fileobj.write(struct.pack(FRAME_HDR_FMT, len(ct), int(final)))
        self._fileobj.write(ct)
        self._index += 1


class DecryptingReader:
    """Read-only file object over an encrypted stream.

    The header and first frame are checked on construction, so a wrong
    passphrase is reported before the caller touches the filesystem.
    """

    def __init__(self, fileobj: BinaryIO, passphrase: str):
        self._fileobj = fileobj
        self._header, t, m, p, salt, self._base_nonce = read_header(fileobj)
        self._key = derive_key(passphrase, salt, t, m, p)
        self._pending = bytearray()
        self._index = 0
        self._final = False
        self._pull()

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        while (size < 0 or len(self._pending) < size) and not self._final:
            self._pull()
        if size < 0:
            size = len(self._pending)
        out = bytes(self._pending[:size])
        del self._pending[:size]
        return out

    def finish(self) -> None:
        """Authenticate whatever the consumer left unread and require a clean end."""
        while not self._final:
            self._pull()
            self._pending.clear()
        self._pending.clear()
        if self._fileobj.read(1):
            raise CipherFailure("corrupt archive: trailing data after final frame")
        logger.debug("encrypted stream verified, %d frame(s)", self._index)

    def _pull(self) -> None:
        frame_hdr = _read_exact(self._fileobj, FRAME_HDR_SIZE)
        if len(frame_hdr) < FRAME_HDR_SIZE:
            raise CipherFailure("corrupt archive: stream is truncated")
        length, final = struct.unpack(FRAME_HDR_FMT, frame_hdr)
        if length > MAX_FRAME_LEN or final > 1:
            raise CipherFailure("corrupt archive: invalid frame header")
        ct = _read_exact(self._fileobj, length)
        if len(ct) < length:
            raise CipherFailure("corrupt archive: stream is truncated")
        nonce = chunk_nonce(self._base_nonce, self._index)
        self._pending += aead_decrypt(self._key, nonce, ct, chunk_aad(self._header, self._index, bool(final)))
        self._index += 1
        self._final = bool(final)

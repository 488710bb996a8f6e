from contextlib import contextmanager
from typing import BinaryIO, Iterator

from tarcrypt.crypto.gpg import GpgCipher
from tarcrypt.crypto.stream import DecryptingReader, EncryptingWriter
from tarcrypt.utils.dataModels import (
    CipherKind,
    CoordinatorConfig,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_M_COST_KiB,
    DEFAULT_PARALLELISM,
    DEFAULT_T_COST,
)
from tarcrypt.utils.errors import InvalidOption


class NativeCipher:
    """In-process AES-256-GCM stream keyed by Argon2id."""

    def __init__(
        self,
        t_cost: int = DEFAULT_T_COST,
        m_cost_kib: int = DEFAULT_M_COST_KiB,
        parallelism: int = DEFAULT_PARALLELISM,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.t_cost = t_cost
        self.m_cost_kib = m_cost_kib
        self.parallelism = parallelism
        self.chunk_size = chunk_size

    @contextmanager
    def encrypt_stream(self, fileobj: BinaryIO, passphrase: str) -> Iterator[EncryptingWriter]:
        writer = EncryptingWriter(fileobj, passphrase, self.t_cost, self.m_cost_kib, self.parallelism, self.chunk_size)
        yield writer
        writer.close()

    @contextmanager
    def decrypt_stream(self, fileobj: BinaryIO, passphrase: str) -> Iterator[DecryptingReader]:
        reader = DecryptingReader(fileobj, passphrase)
        yield reader
        reader.finish()


def make_cipher(config: CoordinatorConfig) -> NativeCipher | GpgCipher:
    if config.cipher is CipherKind.GPG:
        return GpgCipher(config.cipher_options)
    if config.cipher_options:
        raise InvalidOption("cipher options are only supported with --cipher gpg")
    if config.chunk_size <= 0:
        raise InvalidOption(f"invalid chunk size: {config.chunk_size}")
    return NativeCipher(config.t_cost, config.m_cost_kib, config.parallelism, config.chunk_size)

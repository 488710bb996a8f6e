import struct

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from tarcrypt.utils.errors import MissingArgument

DEFAULT_T_COST = 4
DEFAULT_M_COST_KiB = 262144  # 256 MiB (tune per device)
DEFAULT_PARALLELISM = 2
DEFAULT_CHUNK_SIZE = 1 << 20  # 1 MiB of plaintext per frame

# Upper bounds accepted when reading a header, so a forged file cannot ask for absurd KDF work
MAX_T_COST = 64
MAX_M_COST_KiB = 1 << 22  # 4 GiB
MAX_PARALLELISM = 64
MAX_FRAME_LEN = (64 << 20) + 16

SALT_LEN = 16
NONCE_LEN = 12

STREAM_MAGIC = b"TCR1"
STREAM_VERSION = 1
STREAM_HDR_FMT = ">4sBIII16s12s"  # magic, ver, t, m, p, salt(16), nonce(12)
STREAM_HDR_SIZE = struct.calcsize(STREAM_HDR_FMT)
FRAME_HDR_FMT = ">IB"  # ciphertext length, final flag
FRAME_HDR_SIZE = struct.calcsize(FRAME_HDR_FMT)

GPG_PROGRAM = "gpg"
DEFAULT_GPG_OPTIONS = ["--cipher-algo", "AES256"]

PASSPHRASE_ENV = "TARCRYPT_PASSPHRASE"


class Mode(Enum):
    CRYPT = "crypt"
    DECRYPT = "decrypt"


class Compression(str, Enum):
    GZ = "gz"
    BZ2 = "bz2"
    XZ = "xz"
    NONE = "none"

    @property
    def write_mode(self) -> str:
        return "w|" if self is Compression.NONE else f"w|{self.value}"

    @property
    def suffix(self) -> str:
        return "" if self is Compression.NONE else f".{self.value}"


class CipherKind(str, Enum):
    NATIVE = "native"
    GPG = "gpg"

    @property
    def suffix(self) -> str:
        return ".gpg" if self is CipherKind.GPG else ".enc"


@dataclass
class CoordinatorConfig:
    cipher: CipherKind = CipherKind.NATIVE
    cipher_options: List[str] | None = None
    compression: Compression = Compression.GZ
    t_cost: int = DEFAULT_T_COST
    m_cost_kib: int = DEFAULT_M_COST_KiB
    parallelism: int = DEFAULT_PARALLELISM
    chunk_size: int = DEFAULT_CHUNK_SIZE

    @property
    def default_extension(self) -> str:
        """e.g. `.tar.gz.enc`, or `.tar.xz.gpg` with gpg and xz."""
        return ".tar" + self.compression.suffix + self.cipher.suffix


@dataclass
class ArchiveRequest:
    mode: Mode
    target: str | None
    items: List[str] = field(default_factory=list)
    folder: str | None = None

    def validate(self) -> None:
        if not self.target:
            raise MissingArgument("missing archive file argument")
        if self.mode is Mode.CRYPT and not self.items:
            raise MissingArgument("missing item(s) to archive")

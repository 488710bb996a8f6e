#!/usr/bin/env python3
"""
tarcrypt: encrypted tar archives, streamed (no plaintext archive ever touches disk)

crypt packs files/folders into a compressed tar stream that is written straight
into the cipher; decrypt runs the same pipe backwards into a fresh folder.

Encrypted file (native cipher, default extension .tar.gz.enc), big-endian:
    magic     : 4 bytes   -> b"TCR1"
    version   : 1 byte    -> 0x01
    t_cost    : u32
    m_cost    : u32  (KiB)
    parallel  : u32
    salt      : 16 bytes
    nonce     : 12 bytes  (base nonce; frame i uses base XOR i)
    frames    : u32 length, u8 final flag, AES-256-GCM(ciphertext || tag)
With --cipher gpg the file is plain `gpg --symmetric` output (.tar.gz.gpg);
decrypt without --cipher tells the two apart by the magic.

Naming:
    crypt   backup docs/      -> backup.tar.gz.enc   (extension only added when the
                                                      last path segment has no dot)
    decrypt backup.tar.gz.enc -> ./backup/           (file name cut at its FIRST dot)

Commands:
  crypt   <file> <item>...   Archive + encrypt          (c, -c, --crypt)
  decrypt <file> [folder]    Decrypt + extract          (d, -d, --decrypt)
  keygen  [user] [host]      Generate an ed25519 key pair (ssh or pem format)
  help                       Show usage

Security choices:
  - AEAD: AES-256-GCM via cryptography.hazmat, chunked (bounded memory)
  - Argon2id via argon2-cffi low-level API
  - key = Argon2id(SHA3-512(passphrase)) -> 32 bytes or 256 bits
  - destinations are created exclusively; existing files are never overwritten

Note: a failed or interrupted run may leave a partial file/folder behind; it is
not cleaned up automatically.
"""
from __future__ import annotations

import logging
import sys

from tarcrypt.ui.cli import build_parser, normalize_argv
from tarcrypt.utils.errors import TarcryptError
from tarcrypt.utils.helper import warn


def main(argv: list[str] | None = None) -> int:
    argv = normalize_argv(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(argv)
    if getattr(args, "func", None) is None:
        parser.print_usage(sys.stderr)
        warn("missing command")
        return 1

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )
    try:
        args.func(args)
    except TarcryptError as exc:
        warn(str(exc))
        return 1
    except KeyboardInterrupt:
        warn("interrupted")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

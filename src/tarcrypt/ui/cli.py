import argparse

from tarcrypt.utils.core import cmd_crypt, cmd_decrypt
from tarcrypt.utils.dataModels import (
    CipherKind,
    Compression,
    DEFAULT_M_COST_KiB,
    DEFAULT_PARALLELISM,
    DEFAULT_T_COST,
    PASSPHRASE_ENV,
)
from tarcrypt.utils.helper import PROG
from tarcrypt.utils.keygen import KEY_MODES, cmd_keygen

# Option-style spellings of the subcommands, rewritten before parsing
COMMAND_ALIASES = {
    "-c": "crypt",
    "--crypt": "crypt",
    "-d": "decrypt",
    "--decrypt": "decrypt",
}


class ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit 1 with a single `tarcrypt: message` line."""

    def error(self, message):
        self.exit(1, f"{PROG}: {message}\n")


def normalize_argv(argv: list[str]) -> list[str]:
    if argv and argv[0] in COMMAND_ALIASES:
        return [COMMAND_ALIASES[argv[0]], *argv[1:]]
    return list(argv)


def _crypto_options() -> argparse.ArgumentParser:
    p = ArgumentParser(add_help=False)
    p.add_argument("--passphrase", help=f"Passphrase (default: ${PASSPHRASE_ENV}, else prompt)")
    p.add_argument("--passphrase-file", help="Read the passphrase from the first line of a file")
    p.add_argument("--cipher", choices=[c.value for c in CipherKind],
                   help="Cipher backend (default: native; decrypt detects it from the file)")
    p.add_argument("--cipher-option", action="append", metavar="FLAG",
                   help="Extra gpg flag as --cipher-option=FLAG, repeatable (default: --cipher-algo AES256)")
    p.add_argument("-z", "--compression", choices=[c.value for c in Compression], default=Compression.GZ.value,
                   help="Tar compression (default: %(default)s)")
    p.add_argument("-t", type=int, default=DEFAULT_T_COST, help="Argon2 time cost (iterations)")
    p.add_argument("-m", type=int, default=DEFAULT_M_COST_KiB, help="Argon2 memory (KiB)")
    p.add_argument("-p", type=int, default=DEFAULT_PARALLELISM, help="Argon2 parallelism")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    return p


def build_parser() -> ArgumentParser:
    p = ArgumentParser(prog=PROG, description="Encrypted tar archives (tar stream -> cipher, never plaintext on disk)")
    sub = p.add_subparsers(dest="cmd", metavar="command")
    crypto = _crypto_options()

    p_crypt = sub.add_parser("crypt", aliases=["c"], parents=[crypto], help="Archive items and encrypt")
    p_crypt.add_argument("file", nargs="?", help="Encrypted archive to create (extension added if none)")
    p_crypt.add_argument("items", nargs="*", help="Files or folders to archive")
    p_crypt.set_defaults(func=cmd_crypt)

    p_dec = sub.add_parser("decrypt", aliases=["d"], parents=[crypto], help="Decrypt and extract an archive")
    p_dec.add_argument("file", nargs="?", help="Encrypted archive to read")
    p_dec.add_argument("folder", nargs="?", help="Destination folder (default: file name up to its first dot)")
    p_dec.set_defaults(func=cmd_decrypt)

    p_key = sub.add_parser("keygen", help="Generate an ed25519 key pair")
    p_key.add_argument("user", nargs="?", help="Key owner (default: login name)")
    p_key.add_argument("host", nargs="?", help="Key host (default: hostname)")
    p_key.add_argument("-m", "--mode", type=str.lower, choices=KEY_MODES, default="ssh",
                       help="Private key format: ssh (OpenSSH, default) or pem")
    p_key.add_argument("-n", "--dry-run", action="store_true", help="Show what would be created, write nothing")
    p_key.add_argument("-y", "--yes", "--assume-yes", action="store_true", help="Assume yes to the confirmation")
    p_key.add_argument("-o", "--output-dir", default=".", help="Directory for the key files")
    p_key.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    p_key.set_defaults(func=cmd_keygen)

    p_help = sub.add_parser("help", help="Show this help")
    p_help.set_defaults(func=lambda args: p.print_help())

    return p

import argparse
import datetime
import getpass
import os
import socket

from pathlib import Path
from typing import Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from tarcrypt.utils.errors import DestinationExists, InvalidOption
from tarcrypt.utils.prompt import PromptProvider, TerminalPrompt

KEY_MODES = ("ssh", "pem")

_PRIVATE_FORMATS = {
    "ssh": serialization.PrivateFormat.OpenSSH,
    "pem": serialization.PrivateFormat.PKCS8,
}


def key_paths(user: str, host: str, mode: str, day: datetime.date, directory: Path = Path(".")) -> Tuple[Path, Path]:
    """id_ed25519-<user>-<host>-<YYYYMMDD>[.pem] and the matching .pub"""
    ext = "" if mode == "ssh" else f".{mode}"
    private = directory / f"id_ed25519-{user}-{host}-{day:%Y%m%d}{ext}"
    return private, private.with_name(private.name + ".pub")


def generate_keypair(
    user: str,
    host: str,
    mode: str = "ssh",
    directory: Path = Path("."),
    prompt: PromptProvider | None = None,
    dry_run: bool = False,
    day: datetime.date | None = None,
) -> Tuple[Path, Path] | None:
    """Create an Ed25519 key pair after showing the plan and asking for confirmation.

    Returns the (private, public) paths, or None when nothing was written
    (dry run or not confirmed).
    """
    mode = mode.lower()
    if mode not in KEY_MODES:
        raise InvalidOption(f"invalid key mode: {mode}")
    prompt = prompt or TerminalPrompt()
    day = day or datetime.date.today()
    private_path, public_path = key_paths(user, host, mode, day, Path(directory))
    comment = f"{user}@{host} ({day.isoformat()})"

    suffix = " (DRY RUN)" if dry_run else ""
    print(f"Generating public/private ed25519 key pair{suffix}")
    print(f"    private key: {private_path}")
    print(f"    public  key: {public_path}")
    if dry_run or not prompt.confirm():
        return None

    for path in (private_path, public_path):
        if path.exists():
            raise DestinationExists(f"file already exists: {path}")

    key = Ed25519PrivateKey.generate()
    private_bytes = key.private_bytes(
        serialization.Encoding.PEM,
        _PRIVATE_FORMATS[mode],
        serialization.NoEncryption(),
    )
    public_bytes = key.public_key().public_bytes(
        serialization.Encoding.OpenSSH,
        serialization.PublicFormat.OpenSSH,
    )

    try:
        fd = os.open(private_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError as exc:
        raise DestinationExists(f"file already exists: {private_path}") from exc
    with os.fdopen(fd, "wb") as f:
        f.write(private_bytes)
    with public_path.open("xb") as f:
        f.write(public_bytes + b" " + comment.encode("utf-8") + b"\n")
    return private_path, public_path


def cmd_keygen(args: argparse.Namespace) -> None:
    user = args.user or getpass.getuser()
    host = args.host or socket.gethostname()
    created = generate_keypair(
        user,
        host,
        mode=args.mode,
        directory=Path(args.output_dir),
        prompt=TerminalPrompt(assume_yes=args.yes),
        dry_run=args.dry_run,
    )
    if created:
        print(f"[+] Wrote {created[0]} and {created[1]}")

import argparse
import logging
import os

from pathlib import Path
from typing import Sequence

from tarcrypt.crypto.cipher import make_cipher
from tarcrypt.storage.archive import Archiver
from tarcrypt.utils.dataModels import (
    ArchiveRequest,
    CipherKind,
    Compression,
    CoordinatorConfig,
    Mode,
    PASSPHRASE_ENV,
    STREAM_MAGIC,
)
from tarcrypt.utils.errors import (
    ArchiverFailure,
    CipherFailure,
    DestinationExists,
    MissingArgument,
    SourceNotFound,
)
from tarcrypt.utils.helper import derive_extraction_folder, resolve_archive_name
from tarcrypt.utils.prompt import PromptProvider, StaticPrompt, TerminalPrompt

logger = logging.getLogger(__name__)


class ArchiveCoordinator:
    """Validates a request, resolves names and drives archiver <-> cipher.

    Existence is checked up front so most failures happen before anything is
    written; the destination itself is then created exclusively. Once bytes are
    flowing a failure is not rolled back: a partial file or folder may remain.
    """

    def __init__(
        self,
        config: CoordinatorConfig | None = None,
        prompt: PromptProvider | None = None,
        archiver: Archiver | None = None,
        cipher=None,
    ):
        self.config = config or CoordinatorConfig()
        self.prompt = prompt or TerminalPrompt()
        self.archiver = archiver or Archiver(self.config.compression)
        self.cipher = cipher or make_cipher(self.config)

    def run(self, request: ArchiveRequest) -> str:
        request.validate()
        if request.mode is Mode.CRYPT:
            return self.create(request.target, request.items)
        return self.extract(request.target, request.folder)

    def create(self, target: str | None, items: Sequence[str]) -> str:
        if not target:
            raise MissingArgument("missing archive file argument")
        if not items:
            raise MissingArgument("missing item(s) to archive")

        path = resolve_archive_name(target, self.config.default_extension)
        if os.path.lexists(path):
            raise DestinationExists(f"file already exists: {path}")
        for item in items:
            if not os.path.lexists(item):
                raise ArchiverFailure(f"cannot archive {item}: no such file or directory")

        passphrase = self._passphrase(confirm=True)
        try:
            out = open(path, "xb")
        except FileExistsError as exc:
            raise DestinationExists(f"file already exists: {path}") from exc
        except OSError as exc:
            raise ArchiverFailure(f"cannot create {path}: {exc.strerror or exc}") from exc

        logger.debug("creating %s from %d item(s)", path, len(items))
        with out:
            with self.cipher.encrypt_stream(out, passphrase) as sink:
                self.archiver.create_stream(items, sink)
        return path

    def extract(self, source: str | None, folder: str | None = None) -> str:
        if not source:
            raise MissingArgument("missing archive file argument")
        if not os.path.isfile(source):
            raise SourceNotFound(f"file not found: {source}")
        if not folder:
            folder = derive_extraction_folder(source)
            if not folder:
                raise MissingArgument(f"cannot derive a folder name from {source}; give one explicitly")
        if os.path.lexists(folder):
            raise DestinationExists(f"folder already exists: {folder}")

        passphrase = self._passphrase(confirm=False)
        logger.debug("extracting %s into %s", source, folder)
        with open(source, "rb") as src:
            with self.cipher.decrypt_stream(src, passphrase) as stream:
                try:
                    os.mkdir(folder)
                except FileExistsError as exc:
                    raise DestinationExists(f"folder already exists: {folder}") from exc
                except OSError as exc:
                    raise ArchiverFailure(f"cannot create {folder}: {exc.strerror or exc}") from exc
                self.archiver.extract_stream(stream, folder)
        return folder

    def _passphrase(self, confirm: bool) -> str:
        passphrase = self.prompt.secret("Passphrase: ")
        if not passphrase:
            raise CipherFailure("missing passphrase")
        if confirm and self.prompt.secret("Repeat passphrase: ") != passphrase:
            raise CipherFailure("passphrases do not match")
        return passphrase


def prompt_from_args(args: argparse.Namespace) -> PromptProvider:
    """--passphrase, then --passphrase-file, then $TARCRYPT_PASSPHRASE, else the terminal."""
    if args.passphrase is not None:
        return StaticPrompt(args.passphrase)
    if args.passphrase_file:
        try:
            lines = Path(args.passphrase_file).read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise SourceNotFound(f"cannot read passphrase file: {exc}") from exc
        return StaticPrompt(lines[0] if lines else "")
    if os.environ.get(PASSPHRASE_ENV):
        return StaticPrompt(os.environ[PASSPHRASE_ENV])
    return TerminalPrompt()


def detect_cipher(source: str) -> CipherKind:
    """Pick the backend for an existing archive: native if it starts with our magic."""
    try:
        with open(source, "rb") as f:
            magic = f.read(len(STREAM_MAGIC))
    except OSError:
        # missing source is reported by the coordinator
        return CipherKind.NATIVE
    if magic != STREAM_MAGIC and source.endswith(CipherKind.GPG.suffix):
        return CipherKind.GPG
    return CipherKind.NATIVE


def config_from_args(args: argparse.Namespace, source: str | None = None) -> CoordinatorConfig:
    if args.cipher:
        cipher = CipherKind(args.cipher)
    elif source is not None:
        cipher = detect_cipher(source)
        logger.debug("detected %s cipher for %s", cipher.value, source)
    else:
        cipher = CipherKind.NATIVE
    return CoordinatorConfig(
        cipher=cipher,
        cipher_options=args.cipher_option,
        compression=Compression(args.compression),
        t_cost=args.t,
        m_cost_kib=args.m,
        parallelism=args.p,
    )


def cmd_crypt(args: argparse.Namespace) -> None:
    coordinator = ArchiveCoordinator(config_from_args(args), prompt_from_args(args))
    path = coordinator.run(ArchiveRequest(Mode.CRYPT, args.file, list(args.items)))
    print(f"[+] Created {path}")


def cmd_decrypt(args: argparse.Namespace) -> None:
    coordinator = ArchiveCoordinator(config_from_args(args, args.file), prompt_from_args(args))
    folder = coordinator.run(ArchiveRequest(Mode.DECRYPT, args.file, folder=args.folder))
    print(f"[+] Extracted {args.file} -> {folder}")

import logging
import os
import shutil
import subprocess
import tempfile

from contextlib import contextmanager
from typing import BinaryIO, Iterator, List

from tarcrypt.utils.dataModels import DEFAULT_GPG_OPTIONS, GPG_PROGRAM
from tarcrypt.utils.errors import CipherFailure

logger = logging.getLogger(__name__)

DRAIN_SIZE = 1 << 16


def _passphrase_fd(passphrase: str) -> int:
    """Return the read end of a pipe already holding the passphrase line."""
    r, w = os.pipe()
    try:
        os.write(w, passphrase.encode("utf-8") + b"\n")
    finally:
        os.close(w)
    return r


def _last_line(errlog) -> str:
    errlog.seek(0)
    lines = [line.strip() for line in errlog.read().decode("utf-8", "replace").splitlines()]
    lines = [line for line in lines if line]
    return lines[-1] if lines else "no diagnostic"


class GpgCipher:
    """Symmetric encryption through the external `gpg` program.

    The archive stream is fed through gpg's stdin/stdout; the passphrase goes
    over a separate pipe (`--passphrase-fd`) so it never appears in argv.
    """

    def __init__(self, options: List[str] | None = None, program: str = GPG_PROGRAM):
        self.options = list(DEFAULT_GPG_OPTIONS if options is None else options)
        self.program = program

    def command(self, action: str, fd: int) -> List[str]:
        cmd = [
            self.program,
            "--batch",
            "--quiet",
            "--no-symkey-cache",
            "--pinentry-mode", "loopback",
            "--passphrase-fd", str(fd),
        ]
        if action == "encrypt":
            cmd += ["--symmetric", *self.options]
        elif action == "decrypt":
            cmd += ["--decrypt"]
        else:
            raise ValueError(f"unknown gpg action: {action}")
        return cmd + ["--output", "-"]

    def _spawn(self, action: str, passphrase: str, **streams) -> tuple[subprocess.Popen, BinaryIO]:
        if shutil.which(self.program) is None:
            raise CipherFailure(f"{self.program}: command not found")
        errlog = tempfile.TemporaryFile()
        fd = _passphrase_fd(passphrase)
        try:
            cmd = self.command(action, fd)
            logger.debug("running %s", " ".join(cmd))
            proc = subprocess.Popen(cmd, stderr=errlog, pass_fds=(fd,), **streams)
        except OSError as exc:
            errlog.close()
            raise CipherFailure(f"cannot run {self.program}: {exc}") from exc
        finally:
            os.close(fd)
        return proc, errlog

    def _check(self, proc: subprocess.Popen, errlog, action: str) -> None:
        returncode = proc.wait()
        try:
            if returncode != 0:
                raise CipherFailure(f"gpg {action} failed (exit {returncode}): {_last_line(errlog)}")
        finally:
            errlog.close()

    @contextmanager
    def encrypt_stream(self, fileobj: BinaryIO, passphrase: str) -> Iterator[BinaryIO]:
        proc, errlog = self._spawn("encrypt", passphrase, stdin=subprocess.PIPE, stdout=fileobj)
        try:
            yield proc.stdin
        finally:
            try:
                proc.stdin.close()
            except BrokenPipeError:
                pass
            self._check(proc, errlog, "encrypt")

    @contextmanager
    def decrypt_stream(self, fileobj: BinaryIO, passphrase: str) -> Iterator[BinaryIO]:
        proc, errlog = self._spawn("decrypt", passphrase, stdin=fileobj, stdout=subprocess.PIPE)
        try:
            yield proc.stdout
        finally:
            # gpg only exits once its output is consumed; the tar reader may stop
            # before the end-of-archive padding
            while proc.stdout.read(DRAIN_SIZE):
                pass
            proc.stdout.close()
            self._check(proc, errlog, "decrypt")

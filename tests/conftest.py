import os

import pytest

from tarcrypt.utils.core import ArchiveCoordinator
from tarcrypt.utils.dataModels import CoordinatorConfig
from tarcrypt.utils.prompt import StaticPrompt

PASSPHRASE = "correct horse battery staple"

# Smallest Argon2 settings the library accepts; keeps every test fast
FAST_KDF = {"t_cost": 1, "m_cost_kib": 64, "parallelism": 1}


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def config():
    return CoordinatorConfig(chunk_size=4096, **FAST_KDF)


@pytest.fixture
def coordinator(config):
    return ArchiveCoordinator(config, StaticPrompt(PASSPHRASE))


@pytest.fixture
def sample_tree(workdir):
    """docs/ (nested, mixed file and directory modes, one incompressible file) and notes.txt."""
    sub = workdir / "docs" / "sub"
    sub.mkdir(parents=True)
    (workdir / "docs" / "readme.md").write_text("hello\n")
    script = sub / "run.sh"
    script.write_text("#!/bin/sh\necho hi\n")
    script.chmod(0o755)
    secret = sub / "secret.bin"
    secret.write_bytes(os.urandom(20000))
    secret.chmod(0o600)
    private = workdir / "docs" / "private"
    private.mkdir()
    shared = private / "shared.txt"
    shared.write_text("group can edit\n")
    shared.chmod(0o664)
    readonly = private / "ro.txt"
    readonly.write_text("do not touch\n")
    readonly.chmod(0o444)
    private.chmod(0o700)
    notes = workdir / "notes.txt"
    notes.write_text("remember the milk\n")
    notes.chmod(0o640)
    return workdir


def snapshot(root):
    """{relative path: (mode, content)} for everything under root; directories have content None."""
    result = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames:
            path = os.path.join(dirpath, name)
            result[os.path.relpath(path, root)] = (os.stat(path).st_mode & 0o777, None)
        for name in filenames:
            path = os.path.join(dirpath, name)
            rel = os.path.relpath(path, root)
            with open(path, "rb") as f:
                result[rel] = (os.stat(path).st_mode & 0o777, f.read())
    return result

"""gpg backend, driven against small shell stand-ins for the gpg binary."""
import pytest

from conftest import PASSPHRASE, snapshot
from tarcrypt.crypto.gpg import GpgCipher
from tarcrypt.utils.core import ArchiveCoordinator
from tarcrypt.utils.dataModels import CipherKind, CoordinatorConfig
from tarcrypt.utils.errors import CipherFailure
from tarcrypt.utils.prompt import StaticPrompt

PASSTHROUGH = "exec cat"

# Records the passphrase read from --passphrase-fd into $PASSOUT, then passes data through
RECORD_PASSPHRASE = """
while [ $# -gt 0 ]; do
    if [ "$1" = "--passphrase-fd" ]; then fd="$2"; fi
    shift
done
IFS= read -r pass < "/dev/fd/$fd"
printf '%s' "$pass" > "$PASSOUT"
exec cat
"""

FAIL = """
cat > /dev/null
echo "gpg: decryption failed: Bad session key" >&2
exit 2
"""


@pytest.fixture
def fake_gpg(tmp_path):
    def make(body):
        script = tmp_path / "bin" / "fake-gpg"
        script.parent.mkdir(exist_ok=True)
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(0o755)
        return str(script)
    return make


def gpg_coordinator(program):
    config = CoordinatorConfig(cipher=CipherKind.GPG)
    return ArchiveCoordinator(config, StaticPrompt(PASSPHRASE), cipher=GpgCipher(program=program))


def test_encrypt_command():
    cmd = GpgCipher().command("encrypt", 7)
    assert cmd[0] == "gpg"
    assert "--symmetric" in cmd
    assert cmd[cmd.index("--passphrase-fd") + 1] == "7"
    assert cmd[cmd.index("--cipher-algo") + 1] == "AES256"
    assert cmd[-2:] == ["--output", "-"]
    assert PASSPHRASE not in cmd


def test_custom_options_replace_defaults():
    cmd = GpgCipher(["--cipher-algo", "CAMELLIA256", "--s2k-count", "65011712"]).command("encrypt", 3)
    assert cmd[cmd.index("--cipher-algo") + 1] == "CAMELLIA256"
    assert "AES256" not in cmd
    assert "--s2k-count" in cmd


def test_decrypt_command():
    cmd = GpgCipher(["--cipher-algo", "AES256"]).command("decrypt", 5)
    assert "--decrypt" in cmd
    assert "--symmetric" not in cmd
    assert "--cipher-algo" not in cmd


def test_unknown_action():
    with pytest.raises(ValueError):
        GpgCipher().command("sign", 3)


def test_round_trip_through_gpg_pipes(fake_gpg, sample_tree):
    coordinator = gpg_coordinator(fake_gpg(PASSTHROUGH))

    path = coordinator.create("backup", ["docs", "notes.txt"])

    assert path == "backup.tar.gz.gpg"
    # the stand-in passes bytes through, so the file is the raw gzip stream
    assert (sample_tree / path).read_bytes()[:2] == b"\x1f\x8b"
    assert coordinator.extract(path) == "backup"
    assert snapshot(sample_tree / "backup" / "docs") == snapshot(sample_tree / "docs")


def test_passphrase_goes_over_the_fd(fake_gpg, sample_tree, monkeypatch):
    passout = sample_tree / "passout"
    monkeypatch.setenv("PASSOUT", str(passout))
    coordinator = gpg_coordinator(fake_gpg(RECORD_PASSPHRASE))

    coordinator.create("backup", ["notes.txt"])

    assert passout.read_text() == PASSPHRASE


def test_encrypt_failure_is_cipher_failure(fake_gpg, sample_tree):
    coordinator = gpg_coordinator(fake_gpg(FAIL))
    with pytest.raises(CipherFailure, match="exit 2"):
        coordinator.create("backup", ["notes.txt"])


def test_decrypt_failure_reports_gpg_diagnostic(fake_gpg, sample_tree):
    path = gpg_coordinator(fake_gpg(PASSTHROUGH)).create("backup", ["docs"])

    with pytest.raises(CipherFailure, match="Bad session key"):
        gpg_coordinator(fake_gpg(FAIL)).extract(path)

    assert not (sample_tree / "backup" / "docs").exists()


def test_missing_gpg_program(sample_tree):
    coordinator = gpg_coordinator(str(sample_tree / "no-such-gpg"))
    with pytest.raises(CipherFailure, match="command not found"):
        coordinator.create("backup", ["notes.txt"])

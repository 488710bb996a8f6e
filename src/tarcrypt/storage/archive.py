import logging
import os
import tarfile

from typing import BinaryIO, Iterator, Sequence

from tarcrypt.utils.dataModels import Compression
from tarcrypt.utils.errors import ArchiverFailure
from tarcrypt.utils.helper import member_name

logger = logging.getLogger(__name__)


def keep_permissions(member: tarfile.TarInfo, dest_path: str) -> tarfile.TarInfo:
    """`tarfile.data_filter`, but the entry keeps its rwx bits for everyone."""
    safe = tarfile.data_filter(member, dest_path)
    if safe.issym():
        return safe
    return safe.replace(mode=member.mode & 0o777, deep=False)


class Archiver:
    """Streaming tar packer/unpacker. Never seeks, never spools to disk."""

    def __init__(self, compression: Compression = Compression.GZ):
        self.compression = Compression(compression)

    def create_stream(self, items: Sequence[str], fileobj: BinaryIO) -> None:
        try:
            with tarfile.open(fileobj=fileobj, mode=self.compression.write_mode) as tar:
                for item in items:
                    arcname = member_name(item)
                    logger.debug("adding %s as %s", item, arcname)
                    tar.add(item, arcname=arcname)
        except (tarfile.TarError, OSError) as exc:
            raise ArchiverFailure(f"archiving failed: {exc}") from exc

    def extract_stream(self, fileobj: BinaryIO, root: str) -> None:
        """Unpack into `root`, which must already exist.

        Paths go through the `data` extraction filter: entries escaping `root`,
        absolute names, device files and links pointing outside are rejected.
        Each entry then gets its own permission bits back, minus setuid, setgid
        and sticky. An entry whose target already exists is refused.
        """
        try:
            with tarfile.open(fileobj=fileobj, mode="r|*", errorlevel=1) as tar:
                tar.extractall(root, members=self._guarded(tar, root), filter=keep_permissions)
        except (tarfile.TarError, OSError, EOFError) as exc:
            raise ArchiverFailure(f"extraction failed: {exc}") from exc

    @staticmethod
    def _guarded(tar: tarfile.TarFile, root: str) -> Iterator[tarfile.TarInfo]:
        for member in tar:
            safe = tarfile.data_filter(member, root)
            target = os.path.join(root, safe.name)
            if not safe.isdir() and os.path.lexists(target):
                raise ArchiverFailure(f"refusing to overwrite existing file: {target}")
            logger.debug("extracting %s", safe.name)
            yield member

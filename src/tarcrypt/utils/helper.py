import os
import sys

from tarcrypt.utils.dataModels import CoordinatorConfig

PROG = "tarcrypt"
DEFAULT_EXTENSION = CoordinatorConfig().default_extension


def resolve_archive_name(name: str, extension: str = DEFAULT_EXTENSION) -> str:
    """Append `extension` unless the final path segment already has a dot in it."""
    if "." in os.path.basename(name):
        return name
    return name + extension


def derive_extraction_folder(filename: str) -> str:
    """Final path segment cut at its FIRST dot: `dir/data.tar.gz.enc` -> `data`."""
    return os.path.basename(filename).split(".", 1)[0]


def member_name(item: str) -> str:
    """Name an item is stored under: no leading `/` and no leading `..` parts, like tar."""
    parts = os.path.normpath(item).split(os.sep)
    while parts and parts[0] in ("", ".."):
        parts.pop(0)
    if not parts:
        return os.path.basename(os.path.abspath(item))
    return "/".join(parts)


def warn(message: str) -> None:
    print(f"{PROG}: {message}", file=sys.stderr)

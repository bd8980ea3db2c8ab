"""Reading and writing dnsmasq config text files.

dnsmasq rejects a byte-order mark on line 1 as an unknown option, so files
are read as UTF-8 with the BOM stripped and always written without one.
Line endings are normalized on read: lines are split on ``\\n`` and a
trailing ``\\r`` is dropped.
"""

import logging
import os
import stat
from collections.abc import Iterable
from pathlib import Path
from tempfile import NamedTemporaryFile

from masqctl.conf.errors import ManagedFileError

logger = logging.getLogger(__name__)

BOM = "\ufeff"

# Mode of newly created config and hosts files (world-readable)
NEW_FILE_MODE = 0o644


def split_lines(text: str) -> list[str]:
    """Split file content into lines.

    A final newline does not produce an extra empty line, matching how
    line-oriented readers treat text files.

    Args:
        text: Raw file content.

    Returns:
        Lines without their ``\\n`` / ``\\r\\n`` terminators.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def strip_bom(lines: list[str]) -> list[str]:
    """Strip a UTF-8 byte-order mark from the first line, if present.

    Args:
        lines: Lines as read from disk.

    Returns:
        The same lines with the BOM removed from line 1.
    """
    if lines and lines[0].startswith(BOM):
        return [lines[0][len(BOM) :], *lines[1:]]
    return lines


def read_config_lines(path: Path) -> list[str]:
    """Read a config file as a list of lines.

    Args:
        path: File to read.

    Returns:
        Lines with the BOM stripped and line endings normalized.

    Raises:
        OSError: If the file cannot be read.
        UnicodeDecodeError: If the file is not valid UTF-8.
    """
    text = path.read_text(encoding="utf-8")
    return strip_bom(split_lines(text))


def write_lines_atomic(path: Path, lines: Iterable[str]) -> None:
    """Write lines to a file atomically.

    The content is written to a temporary file in the target directory and
    then renamed over the target with os.replace(), so a crash cannot leave
    a truncated file behind. The target keeps its permission bits; a new
    file gets NEW_FILE_MODE.

    Args:
        path: Target file.
        lines: Lines to write; each is terminated with ``\\n``.

    Raises:
        ManagedFileError: If the file cannot be written.
    """
    content = "".join(f"{line}\n" for line in lines)

    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        mode = _target_mode(path)
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            newline="\n",
            dir=path.parent,
            prefix=f".{path.name}.",
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(content)
        os.chmod(tmp_path, mode)
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        msg = f"Failed to write {path}: {e}"
        raise ManagedFileError(msg) from e

    logger.debug("Wrote %s atomically", path)


def _target_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return NEW_FILE_MODE

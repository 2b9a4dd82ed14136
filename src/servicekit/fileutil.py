"""File and path helpers.

Relative paths are resolved against a process-wide project root, which
defaults to the working directory at import time. A frozen executable can
move the root next to itself with ``set_project_path(program_path())``.
"""

import os
import shutil
import sys
from collections.abc import Callable
from enum import IntEnum
from pathlib import Path

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB", "EB")

_project_path = Path.cwd().resolve()


class PathKind(IntEnum):
    """What, if anything, exists at a path."""

    ABSENT = 0
    DIR = 1
    FILE = 2


def get_project_path() -> Path:
    """Get the root that relative paths are resolved against."""
    return _project_path


def set_project_path(path: str | os.PathLike[str]) -> Path:
    """Change the project root. Returns the resolved root."""
    global _project_path
    _project_path = Path(path).expanduser().resolve()
    return _project_path


def real_path(path: str | os.PathLike[str]) -> Path:
    """Get an absolute path, resolving relative paths against the project root."""
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = _project_path / candidate
    return Path(os.path.abspath(candidate))


def safe_path(path: str | os.PathLike[str]) -> str:
    """Get a path relative to the project root, for display.

    Paths outside the root are returned in full.
    """
    resolved = real_path(path)
    try:
        relative = resolved.relative_to(_project_path)
    except ValueError:
        return resolved.as_posix()
    return "/" + relative.as_posix() if relative.parts else "/"


def real_path_mkdir(path: str | os.PathLike[str]) -> Path:
    """Get an absolute directory path, creating it if needed."""
    resolved = real_path(path)
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved


def path_exist(path: str | os.PathLike[str]) -> PathKind:
    """Classify a path as absent, a directory, or a file."""
    resolved = real_path(path)
    if resolved.is_dir():
        return PathKind.DIR
    if resolved.exists():
        return PathKind.FILE
    return PathKind.ABSENT


def dir_exist(path: str | os.PathLike[str]) -> bool:
    return path_exist(path) is PathKind.DIR


def file_exist(path: str | os.PathLike[str]) -> bool:
    return path_exist(path) is PathKind.FILE


def program_path() -> Path:
    """Directory containing the running program.

    For frozen executables this is the executable's directory, otherwise the
    directory of the main script, falling back to the project root.
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    if sys.argv and sys.argv[0]:
        script = Path(sys.argv[0]).resolve()
        if script.is_file():
            return script.parent
    return _project_path


def file_size_format(size: int) -> str:
    """Format a byte count, e.g. 1536 -> '1.5 KB'."""
    if size < 10:
        return f"{size} B"

    exponent = 0
    while exponent + 1 < len(SIZE_UNITS) and size >= 1024 ** (exponent + 1):
        exponent += 1

    value = size / 1024**exponent
    if value < 10:
        return f"{value:.1f} {SIZE_UNITS[exponent]}"
    return f"{value:.0f} {SIZE_UNITS[exponent]}"


def file_size(path: str | os.PathLike[str]) -> str:
    """Formatted size of a file; missing files report '0 B'."""
    try:
        size = real_path(path).stat().st_size
    except OSError:
        size = 0
    return file_size_format(size)


def copy_file(source: str | os.PathLike[str], dest: str | os.PathLike[str]) -> None:
    """Copy a file's contents and permission bits."""
    shutil.copyfile(source, dest)
    shutil.copymode(source, dest)


def copy_dir(
    source: str | os.PathLike[str],
    dest: str | os.PathLike[str],
    filter_fn: Callable[[Path, Path], bool] | None = None,
) -> None:
    """Recursively copy a directory.

    Args:
        source: Directory to copy.
        dest: Destination directory, created with the source's mode.
        filter_fn: Called with (source_file, dest_file); files for which it
            returns False are skipped. A destination left empty is removed.
    """
    source = Path(source)
    dest = Path(dest)
    dest.mkdir(mode=source.stat().st_mode & 0o7777, parents=True, exist_ok=True)

    entries = list(source.iterdir())
    copied = len(entries)
    for entry in entries:
        target = dest / entry.name
        if entry.is_dir():
            copy_dir(entry, target, filter_fn)
        elif filter_fn is None or filter_fn(entry, target):
            copy_file(entry, target)
        else:
            copied -= 1

    if copied < 1:
        rmdir(dest)


def rmdir(path: str | os.PathLike[str], keep_self: bool = False) -> bool:
    """Remove a directory tree, optionally recreating it empty.

    Returns:
        True if the tree was removed.
    """
    resolved = real_path(path)
    try:
        shutil.rmtree(resolved)
    except OSError:
        return False
    if keep_self:
        resolved.mkdir()
    return True


def read_file(path: str | os.PathLike[str]) -> bytes:
    return real_path(path).read_bytes()


def write_file(
    path: str | os.PathLike[str], data: bytes, append: bool = False
) -> None:
    """Write (or append) bytes, creating parent directories."""
    resolved = real_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    with resolved.open("ab" if append else "wb") as f:
        f.write(data)


def put_append(path: str | os.PathLike[str], data: bytes) -> None:
    """Append bytes to the end of a file."""
    write_file(path, data, append=True)


def put_offset(path: str | os.PathLike[str], data: bytes, offset: int) -> None:
    """Write bytes at an offset, keeping the rest of an existing file."""
    resolved = real_path(path)
    mode = "r+b" if resolved.is_file() else "wb"
    with resolved.open(mode) as f:
        f.seek(offset)
        f.write(data)

"""Rooted, read-only filesystem access.

Maps slash-separated URL paths onto files under a fixed root directory.
Hidden files (final segment starting with ``.``) and anything that would
land outside the root are reported as missing, so callers cannot tell
them apart from files that really do not exist.

Errors from the operating system propagate unchanged — classifying them
into HTTP statuses is the server's job, not the accessor's.
"""

from __future__ import annotations

import errno
import os
import stat as stat_module
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType

_OPEN_FLAGS = os.O_RDONLY | getattr(os, "O_BINARY", 0)


def _not_found(name: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)


@dataclass(frozen=True, slots=True)
class FileInfo:
    """Metadata of an opened file or directory."""

    name: str
    size: int
    modified: datetime
    is_dir: bool


class File:
    """An open handle on a file or directory under the root.

    Owned by the request that opened it and closed exactly once, usually
    through ``with``. Reads go through the raw descriptor, so a handle is
    not safe to share between concurrent readers.
    """

    __slots__ = ("_closed", "_fd", "path")

    def __init__(self, path: str, fd: int | None) -> None:
        self.path = path
        self._fd = fd
        self._closed = False

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def closed(self) -> bool:
        return self._closed

    def stat(self) -> FileInfo:
        st = os.stat(self.path) if self._fd is None else os.fstat(self._fd)
        return FileInfo(
            name=self.name,
            size=st.st_size,
            modified=datetime.fromtimestamp(st.st_mtime, tz=UTC),
            is_dir=stat_module.S_ISDIR(st.st_mode),
        )

    def seek(self, offset: int) -> None:
        os.lseek(self._descriptor(), offset, os.SEEK_SET)

    def read(self, size: int) -> bytes:
        """Read up to *size* bytes from the current position."""
        return os.read(self._descriptor(), size)

    def close(self) -> None:
        self._closed = True
        if self._fd is not None:
            fd, self._fd = self._fd, None
            os.close(fd)

    def _descriptor(self) -> int:
        if self._fd is None:
            raise OSError(errno.EBADF, "file is closed or is a directory", self.path)
        return self._fd

    def __enter__(self) -> File:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"File({self.path!r})"


class RootedFileSystem:
    """Open files by URL path, never leaving *root*.

    Usage::

        fs = RootedFileSystem("./public")
        with fs.open("/css/site.css") as f:
            info = f.stat()
    """

    __slots__ = ("_prefix", "root")

    def __init__(self, root: str | Path) -> None:
        self.root = os.path.normpath(os.fspath(Path(root).resolve()))
        self._prefix = os.path.join(self.root, "")

    def resolve(self, name: str) -> str:
        """Return the platform path for URL path *name*.

        Raises:
            FileNotFoundError: For hidden final segments, NUL bytes, and
                paths that resolve outside the root.
        """
        if "\x00" in name:
            raise _not_found(name)
        segments = [segment for segment in name.split("/") if segment]
        full = os.path.normpath(os.path.join(self.root, *segments))
        if full == self.root:
            return full
        if not full.startswith(self._prefix):
            raise _not_found(name)
        if os.path.basename(full).startswith("."):
            raise _not_found(name)
        return full

    def open(self, name: str) -> File:
        """Open the file or directory for URL path *name*.

        Raises:
            FileNotFoundError: As for ``resolve()``, or if nothing exists there.
            PermissionError: If the OS denies access.
            OSError: Any other failure from the OS, unchanged.
        """
        full = self.resolve(name)
        try:
            fd = os.open(full, _OPEN_FLAGS)
        except PermissionError:
            # Windows refuses to open directories as files.
            if os.name == "nt" and os.path.isdir(full):
                return File(full, None)
            raise
        return File(full, fd)

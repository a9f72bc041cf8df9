"""Filesystem storage adapter for per-minute counter logs."""

import logging
import os
from pathlib import Path

from rpcstats.core.models import StoreKey, StoreLine

logger = logging.getLogger(__name__)

_SEPARATORS = tuple(sep for sep in (os.sep, os.altsep, "/") if sep)


def _check_segment(segment: str) -> None:
    if segment in ("", ".", "..") or any(sep in segment for sep in _SEPARATORS):
        raise ValueError(f"Invalid store path segment: {segment!r}")


class FileSystemStore:
    """Filesystem implementation of StorePort.

    Each log is a text file at
    ``<root>/<day>/<service>/<method>/<role>/<peer>/<role>.<metric>``
    holding one ``HHmm value`` line per appended sample. Files are only ever
    appended to, one line per write, and flushed immediately.

    Appends are not locked: a single writer owns every append. Readers may
    run concurrently and skip a trailing line that is still being written.

    Args:
        root: Root directory of the store. Created lazily.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path(self, *segments: str) -> Path:
        """Return the filesystem path of a segment prefix.

        Raises:
            ValueError: If a segment is empty, a relative reference or
                contains a path separator, so it would not map to exactly
                one directory level below the root.
        """
        for segment in segments:
            _check_segment(segment)
        return self._root.joinpath(*segments)

    def append(self, key: StoreKey, line: StoreLine) -> None:
        """Append one sample to the log addressed by key."""
        file_path = self.path(*key.segments)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with file_path.open("a", encoding="utf-8") as f:
            f.write(line.encode())
            f.flush()

    def children(self, *segments: str) -> list[str]:
        """List the entries below a prefix, sorted by name."""
        directory = self.path(*segments)
        try:
            return sorted(entry.name for entry in directory.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            return []

    def modified_time(self, *segments: str) -> float:
        """Return the file modification time, 0.0 when missing."""
        try:
            return self.path(*segments).stat().st_mtime
        except (FileNotFoundError, NotADirectoryError):
            return 0.0

    def read(self, *segments: str) -> list[StoreLine]:
        """Read the well-formed samples of a log.

        An unreadable log is logged and read as empty.
        """
        file_path = self.path(*segments)
        lines: list[StoreLine] = []
        try:
            with file_path.open(encoding="utf-8", errors="replace") as f:
                for raw in f:
                    line = StoreLine.parse(raw)
                    if line is None:
                        logger.debug("Skipping malformed line %r in %s", raw, file_path)
                        continue
                    lines.append(line)
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning("Failed to read %s: %s", file_path, e)
            return []
        return lines

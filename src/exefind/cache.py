"""Cache of discovered executables.

The cache is a plain text file with one ``Name: <name>, Pfad: <path>`` line
per executable. It is rebuilt from a fresh scan whenever it is missing or
older than the configured freshness window, and searched by substring.
"""

import logging
import os
import stat
import tempfile
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from exefind.config import Settings
from exefind.errors import CacheError
from exefind.models import CacheStatus, ExecutableEntry
from exefind.scanner import scan

logger = logging.getLogger(__name__)

NAME_PREFIX = "Name: "
PATH_DELIMITER = ", Pfad: "


def format_line(entry: ExecutableEntry) -> str:
    """Serialize an entry to a cache line (without trailing newline)."""
    if PATH_DELIMITER in entry.name:
        # Not escaped; the entry will not read back intact
        logger.warning("Name %r contains the cache delimiter", entry.name)
    return f"{NAME_PREFIX}{entry.name}{PATH_DELIMITER}{entry.path}"


def parse_line(line: str) -> ExecutableEntry:
    """
    Parse a cache line into an entry.

    Splits on the first delimiter. A line without a delimiter becomes an
    entry with an empty path.
    """
    name, _, path = line.strip().partition(PATH_DELIMITER)
    name = name.strip()
    if name.startswith(NAME_PREFIX):
        name = name[len(NAME_PREFIX):]
    return ExecutableEntry(name=name, path=path.strip())


class CacheManager:
    """Keeps the executable cache file fresh and searches it."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or Settings()
        self.clock = clock

    @property
    def cache_path(self) -> Path:
        return self.settings.cache_path

    def _mtime(self) -> Optional[float]:
        """Modification time of the cache file, or None if it cannot be read."""
        try:
            return self.cache_path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Cannot read metadata of %s: %s", self.cache_path, e)
            return None

    def is_stale(self) -> bool:
        """
        Check whether the cache must be rebuilt.

        Any doubt counts as stale. A modification time in the future is
        treated like a missing file.
        """
        mtime = self._mtime()
        if mtime is None:
            return True
        age = timedelta(seconds=self.clock() - mtime)
        if age < timedelta(0):
            return True
        return age > self.settings.max_age

    def status(self) -> CacheStatus:
        """Describe the current cache file."""
        mtime = self._mtime()
        if mtime is None:
            # Unreadable metadata is reported as missing
            return CacheStatus(path=str(self.cache_path), exists=False)
        return CacheStatus(
            path=str(self.cache_path),
            exists=True,
            modified_at=datetime.fromtimestamp(mtime),
            age=timedelta(seconds=self.clock() - mtime),
            stale=self.is_stale(),
        )

    def _file_mode(self) -> int:
        """Permissions for a rewritten cache: the previous file's, else the umask default."""
        try:
            return stat.S_IMODE(self.cache_path.stat().st_mode)
        except OSError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def refresh(
        self,
        progress_callback: Callable[[str], None] | None = None,
    ) -> list[ExecutableEntry]:
        """
        Rescan the root directories and rewrite the cache file.

        The new contents are written to a temporary file next to the cache
        and moved into place, so a failed write keeps the previous cache.

        Args:
            progress_callback: Optional callback(directory) passed to the scanner

        Returns:
            Entries written, in scan order

        Raises:
            CacheError: If the cache file cannot be written
        """
        entries = scan(
            self.settings.root_directories,
            max_depth=self.settings.max_depth,
            progress_callback=progress_callback,
        )

        directory = self.cache_path.parent
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                newline="\n",
                dir=directory,
                prefix=f".{self.cache_path.name}.",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                for entry in entries:
                    tmp.write(format_line(entry) + "\n")
            # mkstemp creates owner-only files
            os.chmod(tmp_name, self._file_mode())
            os.replace(tmp_name, self.cache_path)
        except OSError as e:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            raise CacheError(f"Cannot write cache file {self.cache_path}: {e}") from e

        logger.info("Wrote %d entries to %s", len(entries), self.cache_path)
        return entries

    def ensure_fresh(
        self,
        progress_callback: Callable[[str], None] | None = None,
    ) -> bool:
        """Refresh the cache if it is stale. Returns True if a refresh happened."""
        if not self.is_stale():
            logger.debug("Cache %s is fresh", self.cache_path)
            return False
        self.refresh(progress_callback=progress_callback)
        return True

    def search(self, term: str) -> list[ExecutableEntry]:
        """
        Find cached entries whose line contains a term.

        Matching is a literal, case-sensitive substring test on the whole
        line; an empty term matches every line, blank ones included.

        Raises:
            CacheError: If the cache file cannot be read
        """
        results: list[ExecutableEntry] = []
        try:
            with open(self.cache_path, encoding="utf-8", errors="replace") as f:
                for raw in f:
                    line = raw.rstrip("\r\n")
                    if term not in line:
                        continue
                    results.append(parse_line(line))
        except OSError as e:
            raise CacheError(f"Cannot read cache file {self.cache_path}: {e}") from e
        return results

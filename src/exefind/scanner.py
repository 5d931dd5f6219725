"""Recursive discovery of executable files.

Walks root directories with os.scandir and collects every file whose
extension is exactly ``exe``. Directories that cannot be listed are logged
and skipped so one unreadable subtree never aborts the whole scan.
"""

import logging
import os
import stat
from pathlib import Path
from typing import Callable, Generator, Iterable, Optional

from exefind.models import ExecutableEntry

logger = logging.getLogger(__name__)

EXECUTABLE_SUFFIX = ".exe"


def is_executable_name(name: str) -> bool:
    """Check whether a file name carries the executable extension (case-sensitive)."""
    return Path(name).suffix == EXECUTABLE_SUFFIX


def is_accessible_dir(path: Path) -> bool:
    """Check that a path is a directory, treating any stat failure as absent."""
    try:
        return stat.S_ISDIR(os.stat(path).st_mode)
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Cannot access %s: %s", path, e)
        return False


def iter_executables(
    directory: Path,
    max_depth: Optional[int] = None,
    progress_callback: Callable[[str], None] | None = None,
) -> Generator[ExecutableEntry, None, None]:
    """
    Yield executables found below a directory, in traversal order.

    Args:
        directory: Directory to walk
        max_depth: Levels to descend, counting this directory as 1 (None = unbounded)
        progress_callback: Optional callback(directory) for each directory entered

    Yields:
        ExecutableEntry for each matching file
    """
    if max_depth is not None and max_depth <= 0:
        return

    if progress_callback:
        progress_callback(str(directory))

    try:
        with os.scandir(directory) as entries:
            # Materialize the listing so a failure mid-iteration drops the whole directory
            children = list(entries)
    except OSError as e:
        logger.warning("Cannot access directory %s: %s", directory, e)
        return

    for entry in children:
        try:
            # Symlinked directories are not followed to avoid cycles
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError as e:
            logger.warning("Cannot inspect %s: %s", entry.path, e)
            continue

        if is_dir:
            yield from iter_executables(
                Path(entry.path),
                None if max_depth is None else max_depth - 1,
                progress_callback,
            )
        elif is_executable_name(entry.name):
            yield ExecutableEntry(
                name=entry.name,
                path=os.path.abspath(entry.path),
            )


def scan(
    root_directories: Iterable[Path],
    max_depth: Optional[int] = None,
    progress_callback: Callable[[str], None] | None = None,
) -> list[ExecutableEntry]:
    """
    Scan root directories for executables.

    Roots that do not exist or cannot be accessed are skipped. Duplicate
    names found in different directories are kept as separate entries.

    Args:
        root_directories: Directories to walk recursively
        max_depth: Optional recursion bound, see iter_executables
        progress_callback: Optional callback(directory) for each directory entered

    Returns:
        Entries in discovery order
    """
    results: list[ExecutableEntry] = []

    for root in root_directories:
        root_path = Path(root)
        if not is_accessible_dir(root_path):
            logger.debug("Skipping root directory %s", root_path)
            continue

        found = list(iter_executables(root_path, max_depth, progress_callback))
        logger.info("Found %d executables under %s", len(found), root_path)
        results.extend(found)

    return results

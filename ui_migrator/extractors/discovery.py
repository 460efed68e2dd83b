"""Source file discovery with include/exclude globs."""

from fnmatch import fnmatch
from pathlib import Path
from typing import List, Sequence
import logging

from ..models.migration import DEFAULT_EXCLUDE, DEFAULT_INCLUDE

logger = logging.getLogger(__name__)


def matches(relative_path: str, patterns: Sequence[str]) -> bool:
    """
    Match a POSIX relative path against glob patterns.

    `**/` also matches zero directories, so `**/*.tsx` matches `Button.tsx`
    at the root.
    """
    for pattern in patterns:
        if fnmatch(relative_path, pattern):
            return True
        if pattern.startswith("**/") and fnmatch(relative_path, pattern[3:]):
            return True
    return False


def discover_sources(
    root: Path,
    include: Sequence[str] = tuple(DEFAULT_INCLUDE),
    exclude: Sequence[str] = tuple(DEFAULT_EXCLUDE),
) -> List[Path]:
    """
    Find candidate component files under a source root.

    Returns:
        Sorted list of matching file paths
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Source root not found: {root}")

    found = []
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        relative = path.relative_to(root).as_posix()
        if not matches(relative, include):
            continue
        if matches(relative, exclude):
            continue
        found.append(path)

    found.sort(key=lambda p: p.relative_to(root).as_posix())
    logger.info(f"Discovered {len(found)} source files under {root}")
    return found

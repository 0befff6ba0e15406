"""Directory traversal: find files by pattern and hand each one to an action."""
import fnmatch
import logging
import os
from typing import Callable, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

IGNORED_DIRECTORIES = frozenset({'bin', 'obj', 'node_modules', '.git', '.vs', '.localizer_backup'})


def matches_pattern(path: str, root: str, patterns: Iterable[str]) -> bool:
    """True if the file name or the root-relative path matches one of ``patterns``."""
    name = os.path.basename(path)
    relative = os.path.relpath(path, root).replace(os.sep, '/')
    return any(fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(relative, pattern) for pattern in patterns)


def find_files(root: str, include_patterns: Sequence[str], exclude_patterns: Optional[Sequence[str]] = None,
               recursive: bool = True) -> List[str]:
    """
    List files under ``root`` matching an include pattern and no exclude pattern.

    Build output folders (bin, obj) and the backup folder are never entered.

    Args:
        root (str): Folder to search, or a single file.
        include_patterns (Sequence[str]): Glob patterns, e.g. ["*.razor"].
        exclude_patterns (Optional[Sequence[str]]): Glob patterns to leave out.
        recursive (bool): Descend into sub-folders.

    Returns:
        List[str]: Sorted file paths.
    """
    exclude_patterns = exclude_patterns or []
    if os.path.isfile(root):
        folder = os.path.dirname(root) or '.'
        if matches_pattern(root, folder, include_patterns) and not matches_pattern(root, folder, exclude_patterns):
            return [root]
        return []

    found: List[str] = []
    for current, directories, files in os.walk(root):
        directories[:] = sorted(d for d in directories if d not in IGNORED_DIRECTORIES)
        for name in files:
            path = os.path.join(current, name)
            if not matches_pattern(path, root, include_patterns):
                continue
            if matches_pattern(path, root, exclude_patterns):
                logger.debug("Excluded %s", path)
                continue
            found.append(path)
        if not recursive:
            break
    return sorted(found)


def output_path_for(input_file: str, input_root: str, output_root: Optional[str]) -> str:
    """Folder receiving output for ``input_file``: its own folder, or the mirrored folder under ``output_root``."""
    folder = os.path.dirname(input_file)
    if not output_root:
        return folder
    relative = os.path.relpath(folder, input_root)
    return os.path.normpath(os.path.join(output_root, relative))


def process_files(root: str, include_patterns: Sequence[str], action: Callable[[str, str], None],
                  exclude_patterns: Optional[Sequence[str]] = None, output_root: Optional[str] = None,
                  recursive: bool = True) -> int:
    """
    Call ``action(input_file, output_folder)`` for every matching file.

    Returns:
        int: Number of files processed.
    """
    count = 0
    for path in find_files(root, include_patterns, exclude_patterns, recursive):
        action(path, output_path_for(path, root, output_root))
        count += 1
    return count

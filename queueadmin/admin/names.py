"""
Queue name resolution for batch mode.

Merges names given directly on the command line with names listed in files
(one per line) into one ordered, de-duplicated list of normalized names.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, List

from .tokens import File, Name, Number, Token, to_queue_name

logger = logging.getLogger(__name__)


def read_queue_file(path: Path) -> List[str]:
    """
    Read a queue list file: trimmed lines, blank lines dropped.

    Bytes that are not valid UTF-8 become U+FFFD instead of failing the read.
    """
    lines = path.read_text(encoding="utf-8-sig", errors="replace").splitlines()
    return [line.strip() for line in lines if line.strip()]


def resolve_queue_names(
    tokens: Iterable[Token],
    prefix: str,
    read_lines: Callable[[Path], List[str]] = read_queue_file,
) -> List[str]:
    """
    Build the ordered set of queue names to act on.

    Direct names (including numeric tokens) come first in argument order,
    followed by names read from files in file and line order. A name already
    seen in normalized form is skipped. Direct names go first on purpose, so
    a name typed on the command line keeps its place ahead of a file listing
    the same queue.

    Args:
        tokens: Classified command-line tokens
        prefix: Queue path prefix used for normalization
        read_lines: Reader for file tokens

    Returns:
        Normalized queue names, no duplicates

    Raises:
        OSError: If a file token cannot be read
    """
    direct: List[str] = []
    from_files: List[str] = []

    for token in tokens:
        if isinstance(token, (Name, Number)):
            direct.append(token.text)
        elif isinstance(token, File):
            lines = read_lines(token.path)
            logger.debug(f"Read {len(lines)} queue name(s) from {token.path}")
            from_files.extend(lines)

    names: List[str] = []
    seen = set()
    for raw in direct + from_files:
        name = to_queue_name(raw, prefix)
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names

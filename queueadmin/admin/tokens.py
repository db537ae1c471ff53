"""
Command-line token classification.

Each raw token is classified once into a Flag, File, Number or Name; the rest
of the admin package folds over those tags instead of re-testing strings.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

FLAG_MARKER = "--"

# Optional surrounding whitespace and sign, then decimal digits
INTEGER_PATTERN = re.compile(r'^\s*[+-]?\d+\s*$')
INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


@dataclass(frozen=True)
class Flag:
    text: str


@dataclass(frozen=True)
class File:
    path: Path


@dataclass(frozen=True)
class Number:
    text: str
    value: int


@dataclass(frozen=True)
class Name:
    text: str


Token = Union[Flag, File, Number, Name]


def parse_integer(text: str) -> Optional[int]:
    """Parse a 32-bit integer literal, or return None."""
    if not INTEGER_PATTERN.match(text):
        return None
    value = int(text)
    if value < INT32_MIN or value > INT32_MAX:
        return None
    return value


def is_existing_file(text: str) -> bool:
    try:
        return Path(text).is_file()
    except (OSError, ValueError):
        return False


def classify_token(
    text: str,
    is_file: Optional[Callable[[str], bool]] = is_existing_file,
) -> Token:
    """
    Classify one raw token.

    Flags win over everything, so a flag is never read as a file. Pass
    ``is_file=None`` to skip the file system check.
    """
    if text.startswith(FLAG_MARKER):
        return Flag(text)
    if is_file is not None and is_file(text):
        return File(Path(text))
    value = parse_integer(text)
    if value is not None:
        return Number(text, value)
    return Name(text)


def classify_tokens(
    args: Iterable[str],
    is_file: Optional[Callable[[str], bool]] = is_existing_file,
) -> List[Token]:
    return [classify_token(arg, is_file) for arg in args]


def has_flag(tokens: Iterable[Token], flag: str) -> bool:
    return any(isinstance(token, Flag) and token.text == flag for token in tokens)


def first_number_or(tokens: Iterable[Token], default: int) -> int:
    for token in tokens:
        if isinstance(token, Number):
            return token.value
    return default


def non_numeric(tokens: Iterable[Token]) -> List[Token]:
    return [token for token in tokens if not isinstance(token, Number)]


def token_text(token: Token) -> str:
    if isinstance(token, File):
        return str(token.path)
    return token.text


def to_queue_name(value: str, prefix: str) -> str:
    """Return ``value`` with the queue path prefix, adding it when missing."""
    if value.startswith(prefix):
        return value
    return prefix + value

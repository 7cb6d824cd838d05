from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from .errors import EnvFileNotFoundError, EnvReadError, RootNotFoundError

log = logging.getLogger(__name__)

PathLike = Union[str, Path]

DEFAULT_FILENAME = ".env"
DEFAULT_MARKERS = (".git", "pyproject.toml", ".project-root", ".root")


@dataclass(frozen=True)
class RawEntry:
    key: str
    value: str
    line: int = 0


def find_root(start: Optional[PathLike] = None, markers: Sequence[str] = DEFAULT_MARKERS) -> Path:
    """Walk up from `start` (default: cwd) to the first directory holding a marker."""
    origin = Path(start).expanduser().resolve() if start else Path.cwd()
    current = origin
    while True:
        for marker in markers:
            if (current / marker).exists():
                log.debug("Found project root %s (marker %s)", current, marker)
                return current
        if current.parent == current:
            raise RootNotFoundError(origin, markers)
        current = current.parent


def resolve_env_path(
    filename: Optional[PathLike] = None,
    use_root: bool = True,
    markers: Sequence[str] = DEFAULT_MARKERS,
    start: Optional[PathLike] = None,
) -> Path:
    """Return the env file to read.

    Without an explicit `filename`, ENVCTL_FILE wins; otherwise `.env` at the
    project root. With `use_root` false the name is used as given.
    """
    if filename is None:
        override = os.environ.get("ENVCTL_FILE")
        if override:
            return Path(override).expanduser()
        filename = DEFAULT_FILENAME

    if not use_root:
        return Path(filename).expanduser()

    return find_root(start, markers) / filename


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1].replace('\\"', '"')
    return value


def parse_lines(lines: Iterable[str]) -> Iterator[RawEntry]:
    """Yield `KEY=value` assignments, skipping blanks, comments and junk lines."""
    for number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            log.debug("Skipping line %d without '='", number)
            continue
        key, value = line.split("=", 1)
        yield RawEntry(key=key.strip(), value=_unquote(value.strip()), line=number)


def read_entries(path: PathLike) -> List[RawEntry]:
    p = Path(path)
    if not p.exists():
        raise EnvFileNotFoundError(p)
    try:
        with p.open("r", encoding="utf-8") as fh:
            entries = list(parse_lines(fh))
    except (OSError, UnicodeDecodeError) as e:
        raise EnvReadError(p, str(e)) from e
    log.info("Read %d entries from %s", len(entries), p)
    return entries

"""The key/value store that ties the value-resolution pipeline together.

Ingestion resolves `${VAR}` references once, in file order. Retrieval coerces
(and optionally decrypts) on demand, so the stored text is never modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .coerce import TypedValue, coerce, infer
from .crypto import decrypt, is_encrypted
from .errors import (
    EnvError,
    LoadError,
    NotEncryptedError,
    StringConversionError,
    with_key,
)
from .files import DEFAULT_MARKERS, PathLike, RawEntry, read_entries, resolve_env_path
from .resolver import Lookup, VariableResolver

log = logging.getLogger(__name__)

Entry = Tuple[str, Any]


@dataclass
class LoadResult:
    """Outcome of reading one env file."""

    path: Optional[Path] = None
    inserted: int = 0
    skipped: int = 0
    error: Optional[LoadError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BulkResult:
    """Values that coerced cleanly plus the per-key failures."""

    values: Dict[str, TypedValue] = field(default_factory=dict)
    errors: Dict[str, EnvError] = field(default_factory=dict)

    @property
    def last_error(self) -> Optional[EnvError]:
        if not self.errors:
            return None
        return list(self.errors.values())[-1]

    def to_python(self) -> Dict[str, Any]:
        return {k: v.to_python() for k, v in self.values.items()}


@dataclass
class _Source:
    filename: Optional[PathLike]
    use_root: bool
    markers: Sequence[str]


class Store:
    def __init__(self, lookup: Optional[Lookup] = None):
        self.contents: Dict[str, Any] = {}
        self.error: Optional[LoadError] = None
        self.resolver = VariableResolver(lookup)
        self._sources: List[_Source] = []

    @classmethod
    def from_files(
        cls,
        filename: Optional[PathLike] = None,
        use_root: bool = True,
        extra_files: Iterable[PathLike] = (),
        markers: Sequence[str] = DEFAULT_MARKERS,
        lookup: Optional[Lookup] = None,
    ) -> "Store":
        """Build a store from `extra_files` followed by the main env file.

        Earlier files win on duplicate keys. Load failures are kept on
        `Store.error` rather than raised.
        """
        store = cls(lookup)
        for extra in extra_files:
            store.load_file(extra, use_root=use_root, markers=markers)
        store.load_file(filename, use_root=use_root, markers=markers)
        return store

    def __contains__(self, key: object) -> bool:
        return key in self.contents

    def __len__(self) -> int:
        return len(self.contents)

    def keys(self) -> List[str]:
        return list(self.contents)

    # Ingestion

    def load(self, entries: Iterable[Entry | RawEntry]) -> Tuple[int, int]:
        """Insert entries in order; the first definition of a key wins.

        Returns the number of inserted and skipped entries.
        """
        inserted = skipped = 0
        for entry in entries:
            key, value = (entry.key, entry.value) if isinstance(entry, RawEntry) else entry
            if key in self.contents:
                log.debug("Ignoring duplicate key %s", key)
                skipped += 1
                continue
            if isinstance(value, str):
                value = self.resolver.resolve(value, self.contents)
            self.contents[key] = value
            inserted += 1
        return inserted, skipped

    def load_file(
        self,
        filename: Optional[PathLike] = None,
        use_root: bool = True,
        markers: Sequence[str] = DEFAULT_MARKERS,
    ) -> LoadResult:
        self._sources.append(_Source(filename, use_root, tuple(markers)))
        return self._read(self._sources[-1])

    def load_files(
        self,
        filenames: Iterable[PathLike],
        use_root: bool = True,
        markers: Sequence[str] = DEFAULT_MARKERS,
    ) -> List[LoadResult]:
        return [self.load_file(f, use_root=use_root, markers=markers) for f in filenames]

    def _read(self, source: _Source) -> LoadResult:
        result = LoadResult()
        try:
            result.path = resolve_env_path(source.filename, source.use_root, source.markers)
            entries = read_entries(result.path)
        except LoadError as e:
            log.warning("Failed to load env file %s: %s", source.filename or result.path, e)
            result.error = e
            self.error = e
            return result

        result.inserted, result.skipped = self.load(entries)
        log.info(
            "Loaded %d entries from %s (%d duplicates ignored)",
            result.inserted,
            result.path,
            result.skipped,
        )
        return result

    def reload(self) -> List[LoadResult]:
        """Forget everything and read the same sources again."""
        self.contents = {}
        self.error = None
        return [self._read(source) for source in self._sources]

    # Retrieval

    def _lookup(self, key: str, default: Any) -> Any:
        if self.error is not None:
            raise self.error
        return self.contents.get(key, default)

    def get_value(self, key: str, kind: Optional[str] = None, default: Any = None) -> Optional[TypedValue]:
        """Return the value for `key` coerced to `kind` (inferred when omitted).

        A missing key falls back to `default`, which goes through the same
        coercion. Returns None only when the key is missing and no default
        was given.
        """
        value = self._lookup(key, default)
        if value is None:
            return None
        try:
            return coerce(str(value), kind)
        except EnvError as e:
            with_key(e, key)
            raise

    def get_encrypted_value(
        self,
        key: str,
        kind: Optional[str] = None,
        default: Any = None,
        decryption_key: str = "",
    ) -> TypedValue:
        value = self._lookup(key, default)
        if value is None or not is_encrypted(value):
            raise NotEncryptedError(value, key=key)
        try:
            plaintext = decrypt(str(value), decryption_key)
            return coerce(plaintext, kind)
        except EnvError as e:
            with_key(e, key)
            raise

    def get_all_resolved(self) -> BulkResult:
        """Infer every stored value.

        Keys that fail are reported in `BulkResult.errors`; the rest are still
        converted.
        """
        if self.error is not None:
            raise self.error
        result = BulkResult()
        for key, value in dict(self.contents).items():
            if not isinstance(value, str):
                result.errors[key] = StringConversionError(value, key=key)
                continue
            try:
                result.values[key] = infer(value)
            except EnvError as e:
                result.errors[key] = with_key(e, key)

        for key, error in result.errors.items():
            log.warning("Could not convert %s: %s", key, error)
        return result

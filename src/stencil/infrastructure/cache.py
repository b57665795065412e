"""Durable cache of compiled templates, keyed on dependency mtimes.

Layout under the cache directory:

  <fingerprint>.py          compiled code
  <fingerprint>.meta.json   CacheMetadata (written after the code)
  index/<hash>.json         CacheIndexRecord: latest fingerprint per source

The fingerprint is a sha256 over ``path:mtime_ns`` for the source followed by
every dependency, so any touched file yields a new key. An entry is valid only
while each recorded dependency exists with ``mtime <= compiled_at``. Entries are
checked lazily, at render time.
"""
from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from stencil.domain.errors import CacheDirectoryError
from stencil.domain.models import CacheIndexRecord, CacheMetadata, CompilationResult

from . import fs

logger = logging.getLogger(__name__)

CODE_SUFFIX = ".py"
META_SUFFIX = ".meta.json"
INDEX_DIR = "index"


@dataclass(slots=True)
class CacheEntry:
    fingerprint: str
    code_path: Path
    meta_path: Path
    metadata: CacheMetadata | None

    def read_code(self) -> str:
        return fs.read_text(self.code_path)


def fingerprint(source: str | Path, deps: Iterable[str | Path]) -> str:
    parts = [f"{p}:{fs.mtime_ns(p)}" for p in (str(source), *(str(d) for d in deps))]
    return hashlib.sha256("\n".join(parts).encode("utf-8")).hexdigest()


class CompiledTemplateCache:
    """Reads, writes, validates and evicts compiled-template entries."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        try:
            (self.directory / INDEX_DIR).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheDirectoryError(self.directory, exc) from exc

    # ------------------------------ lookup ------------------------------ #

    def get(self, key: str) -> CacheEntry | None:
        code_path = self.directory / f"{key}{CODE_SUFFIX}"
        if not code_path.is_file():
            return None
        meta_path = self.directory / f"{key}{META_SUFFIX}"
        return CacheEntry(key, code_path, meta_path, self._load_metadata(meta_path))

    def lookup(self, source: str | Path) -> CacheEntry | None:
        """Entry the index points at for ``source``, or None.

        Lets an unchanged template skip compilation entirely: the dependency
        list comes from the previous compile's metadata. When a dependency has
        been touched since, the recorded deps no longer hash to the entry's
        fingerprint and the superseded entry is evicted here.
        """
        key = self._indexed_fingerprint(source)
        if key is None:
            return None
        entry = self.get(key)
        if entry is None or entry.metadata is None:
            return entry
        if fingerprint(entry.metadata.source, entry.metadata.deps) != entry.fingerprint:
            logger.debug("Evicting superseded entry %s for %s", entry.fingerprint, source)
            self.evict(entry)
            return None
        return entry

    def is_valid(self, entry: CacheEntry, *, allow_unsafe_calls: bool = True) -> bool:
        """Every recorded dep exists and is no newer than ``compiled_at``.

        Code compiled with direct-call filters is refused when the caller
        does not allow them.
        """
        meta = entry.metadata
        if meta is None:
            return False
        if meta.unsafe_calls and not allow_unsafe_calls:
            return False
        for dep in meta.deps:
            modified = fs.mtime(dep)
            if modified is None or modified > meta.compiled_at:
                return False
        return True

    # ------------------------------ writes ------------------------------ #

    def store(
        self,
        source: str | Path,
        result: CompilationResult,
        *,
        unsafe_calls: bool = False,
    ) -> CacheEntry:
        key = fingerprint(source, result.deps)
        code_path = self.directory / f"{key}{CODE_SUFFIX}"
        meta_path = self.directory / f"{key}{META_SUFFIX}"
        # code first: metadata must never point at a missing artifact
        fs.write_text(code_path, result.code)
        meta = CacheMetadata(
            source=str(source),
            deps=list(result.deps),
            compiled_at=time.time(),
            fingerprint=key,
            unsafe_calls=unsafe_calls,
        )
        fs.write_json(meta_path, meta.model_dump())
        self.point_index(source, key)
        logger.debug("Cached %s as %s", source, key)
        return CacheEntry(key, code_path, meta_path, meta)

    def point_index(self, source: str | Path, key: str) -> None:
        """Record ``key`` as the latest entry for ``source``.

        The entry previously indexed for ``source``, if any and different,
        is evicted.
        """
        previous = self._indexed_fingerprint(source)
        if previous == key:
            return
        if previous is not None:
            superseded = self.get(previous)
            if superseded is not None:
                logger.debug("Evicting superseded entry %s for %s", previous, source)
                self.evict(superseded)
        fs.write_json(
            self._index_path(source),
            CacheIndexRecord(source=str(source), fingerprint=key).model_dump(),
        )

    def evict(self, entry: CacheEntry) -> None:
        fs.remove(entry.code_path)
        fs.remove(entry.meta_path)

    def clear(self) -> int:
        removed = 0
        for code_path in self.directory.glob(f"*{CODE_SUFFIX}"):
            key = code_path.name[: -len(CODE_SUFFIX)]
            self.evict(CacheEntry(key, code_path, self.directory / f"{key}{META_SUFFIX}", None))
            removed += 1
        for orphan in self.directory.glob(f"*{META_SUFFIX}"):
            fs.remove(orphan)
        for index in (self.directory / INDEX_DIR).glob("*.json"):
            fs.remove(index)
        logger.info("Cleared %d compiled template(s) from %s", removed, self.directory)
        return removed

    # ------------------------------ helpers ----------------------------- #

    def _index_path(self, source: str | Path) -> Path:
        digest = hashlib.sha256(str(source).encode("utf-8")).hexdigest()
        return self.directory / INDEX_DIR / f"{digest}.json"

    def _indexed_fingerprint(self, source: str | Path) -> str | None:
        try:
            raw = fs.read_json(self._index_path(source))
            if raw is None:
                return None
            return CacheIndexRecord.model_validate(raw).fingerprint
        except ValueError:  # undecodable JSON or schema mismatch
            logger.debug("Ignoring malformed cache index for %s", source)
            return None

    @staticmethod
    def _load_metadata(meta_path: Path) -> CacheMetadata | None:
        try:
            raw = fs.read_json(meta_path)
            return None if raw is None else CacheMetadata.model_validate(raw)
        except ValueError:
            logger.debug("Ignoring malformed cache metadata %s", meta_path)
            return None


__all__ = ["CacheEntry", "CompiledTemplateCache", "fingerprint"]

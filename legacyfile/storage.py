"""Storage abstraction over a vault: a directory tree of notes.

The snapshot writer and consolidator only talk to the :class:`Storage`
protocol. :class:`Vault` is the filesystem implementation used by the
CLI; every ``OSError`` (and undecodable content) it hits surfaces as
:class:`~legacyfile.errors.StorageFailure`.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from legacyfile.errors import StorageFailure

log = logging.getLogger(__name__)

ROOT_PATH = "/"

_SEPARATORS_RE = re.compile(r'[\\/]+')


def _clean_path(path: str) -> str:
    """Collapse separators only; the characters of each name are kept as is."""
    return _SEPARATORS_RE.sub("/", path).strip("/") or ROOT_PATH


def normalize_path(path: str) -> str:
    """Collapse a vault path into its canonical form.

    Backslashes become ``/``, repeated separators collapse, leading and
    trailing separators are stripped, non-breaking spaces become plain
    spaces and the result is NFC-normalised. The vault root normalises
    to ``/``. Canonical paths are for comparison only; filesystem I/O
    uses the path as found on disk.
    """
    path = _clean_path(path)
    path = path.replace("\u00a0", " ").replace("\u202f", " ")
    path = unicodedata.normalize("NFC", path)
    return path.strip("/") or ROOT_PATH


@dataclass(frozen=True)
class EntryRef:
    """A file in the vault.

    ``name`` is the file name without extension and ``parent_path`` the
    containing folder, both in canonical (:func:`normalize_path`) form.
    ``path`` is the vault path of the file as stored on disk, with only
    separators collapsed, so NFD names from other systems stay readable.
    """
    name: str
    parent_path: str
    path: str

    @classmethod
    def from_path(cls, path: str) -> EntryRef:
        real = _clean_path(path)
        parent, _, filename = real.rpartition("/")
        return cls(
            name=Path(normalize_path(filename)).stem,
            parent_path=normalize_path(parent),
            path=real,
        )


class Storage(Protocol):
    """Operations the writer and consolidator need from a vault."""

    def exists(self, path: str) -> bool: ...

    def create_folder(self, path: str) -> None: ...

    def list_all_entries(self) -> list[EntryRef]: ...

    def read(self, entry: EntryRef) -> str: ...

    def create(self, path: str, content: str) -> EntryRef: ...

    def delete(self, entry: EntryRef) -> None: ...


class Vault:
    """Filesystem-backed :class:`Storage` rooted at a directory.

    Paths passed in are vault-relative; separators are collapsed before
    use but names are not re-encoded. Hidden directories (``.git``,
    ``.legacyfile``) are never listed.

    Parameters
    ----------
    root:
        Vault root directory.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _abs(self, path: str) -> Path:
        real = _clean_path(path)
        if real == ROOT_PATH:
            return self._root
        return self._root / real

    def exists(self, path: str) -> bool:
        return self._abs(path).exists()

    def create_folder(self, path: str) -> None:
        target = self._abs(path)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageFailure("create_folder", normalize_path(path), exc) from exc
        log.debug("Created folder %s", target)

    def list_all_entries(self) -> list[EntryRef]:
        entries: list[EntryRef] = []
        try:
            for p in sorted(self._root.rglob("*")):
                rel = p.relative_to(self._root)
                if any(part.startswith(".") for part in rel.parts):
                    continue
                if p.is_file():
                    entries.append(EntryRef.from_path(rel.as_posix()))
        except OSError as exc:
            raise StorageFailure("list", str(self._root), exc) from exc
        return entries

    def read(self, entry: EntryRef) -> str:
        try:
            with open(self._abs(entry.path), encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageFailure("read", entry.path, exc) from exc

    def create(self, path: str, content: str) -> EntryRef:
        """Create a new file at *path*; fails if anything already exists there."""
        target = self._abs(path)
        try:
            with open(target, "x", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as exc:
            raise StorageFailure("create", normalize_path(path), exc) from exc
        log.debug("Created %s (%d chars)", target, len(content))
        return EntryRef.from_path(path)

    def delete(self, entry: EntryRef) -> None:
        try:
            self._abs(entry.path).unlink()
        except OSError as exc:
            raise StorageFailure("delete", entry.path, exc) from exc
        log.debug("Deleted %s", entry.path)

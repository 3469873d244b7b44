"""Snapshot writer: save the current content of a document to the archive."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from legacyfile.config import Settings
from legacyfile.errors import NoActiveDocument
from legacyfile.naming import ENTRY_SUFFIX, format_timestamp, snapshot_name
from legacyfile.storage import EntryRef, Storage, normalize_path

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotResult:
    """Outcome of :func:`write_snapshot`."""
    name: str
    timestamp: str
    entry: EntryRef
    chars: int


def ensure_archive(storage: Storage, archive_path: str) -> str:
    """Create the archive folder if absent and return its normalised path."""
    folder = normalize_path(archive_path)
    if not storage.exists(folder):
        storage.create_folder(folder)
        log.info("Created archive folder %s", folder)
    return folder


def write_snapshot(
    storage: Storage,
    document: EntryRef | None,
    settings: Settings,
    now: datetime | None = None,
) -> SnapshotResult:
    """Write a new timestamped snapshot of *document* into the archive.

    The new entry is named ``{base}_legacy_{YYYYMMDDHHmmss}`` after the
    local time *now* (default: current time). File creation is the
    last step, so a failure leaves at most an empty archive folder.
    Existing entries are never overwritten; a name collision within the
    same second surfaces as :class:`~legacyfile.errors.StorageFailure`.

    Parameters
    ----------
    storage:
        Vault to read from and write to.
    document:
        The active document, or None if there is none.
    settings:
        Resolved settings; only ``archive_path`` is used.
    now:
        Snapshot time. Defaults to the current local time.

    Returns
    -------
    SnapshotResult
        Name, timestamp and location of the new snapshot.
    """
    if document is None:
        raise NoActiveDocument()

    content = storage.read(document)
    timestamp = format_timestamp(now)
    name = snapshot_name(document.name, timestamp)

    folder = ensure_archive(storage, settings.archive_path)
    entry = storage.create(normalize_path(f"{folder}/{name}{ENTRY_SUFFIX}"), content)

    log.info("Snapshot %s written (%d chars)", entry.path, len(content))
    return SnapshotResult(name=name, timestamp=timestamp, entry=entry, chars=len(content))

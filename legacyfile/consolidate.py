"""Snapshot consolidation: merge a document's snapshots into one record.

Discovers every ``{base}_legacy_{YYYYMMDDHHmmss}`` entry directly inside
the archive folder, orders them by timestamp, concatenates them under
per-snapshot headings and replaces them with a single
``{base}_legacy_{start}-{end}`` record. The record is written before
any snapshot is deleted.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from legacyfile.config import Settings
from legacyfile.errors import ArchiveMissing, NoActiveDocument, NoSnapshots, StorageFailure
from legacyfile.naming import (
    ENTRY_SUFFIX,
    extract_timestamp,
    record_name,
    record_pattern,
    snapshot_name,
    snapshot_pattern,
    sort_timestamped,
    timestamp_range,
)
from legacyfile.storage import EntryRef, Storage, normalize_path

log = logging.getLogger(__name__)

# Placed between consecutive snapshots in a record: blank line, rule, blank line
SEPARATOR = "\n___\n\n"

# A separator followed by the next snapshot heading
_PART_BOUNDARY_RE = re.compile(r'\n___\n\n(?=# \S.*_legacy_[0-9]{14}\n\n)')

_HEADING_RE = re.compile(r'^# (.+)\n\n')


@dataclass(frozen=True)
class TimestampedEntry:
    """A snapshot entry paired with its extracted timestamp."""
    entry: EntryRef
    timestamp: str


@dataclass
class ConsolidationResult:
    """Outcome of :func:`consolidate`.

    ``failed_deletions`` lists snapshots that were merged into the record
    but could not be deleted afterwards.
    """
    name: str
    entry: EntryRef
    start_timestamp: str
    end_timestamp: str
    merged: list[EntryRef] = field(default_factory=list)
    failed_deletions: list[EntryRef] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_deletions


def find_snapshots(storage: Storage, base_name: str, archive_path: str) -> list[EntryRef]:
    """Find the snapshots of *base_name* directly inside *archive_path*.

    Entries in nested folders and consolidated records are excluded.
    """
    folder = normalize_path(archive_path)
    pattern = snapshot_pattern(base_name)
    return [
        e for e in storage.list_all_entries()
        if normalize_path(e.parent_path) == folder and pattern.match(e.name)
    ]


def find_records(storage: Storage, base_name: str, archive_path: str) -> list[EntryRef]:
    """Find the consolidated records of *base_name* directly inside *archive_path*."""
    folder = normalize_path(archive_path)
    pattern = record_pattern(base_name)
    return [
        e for e in storage.list_all_entries()
        if normalize_path(e.parent_path) == folder and pattern.match(e.name)
    ]


def order_snapshots(entries: list[EntryRef], sort_order: str) -> list[TimestampedEntry]:
    """Pair entries with their timestamps and sort them by *sort_order*."""
    stamped = [TimestampedEntry(e, extract_timestamp(e.name)) for e in entries]
    return sort_timestamped(stamped, sort_order, key=lambda s: s.timestamp)


def build_body(parts: list[tuple[str, str]]) -> str:
    """Concatenate ``(heading_name, content)`` pairs into a record body.

    Each part is rendered as ``# {heading_name}``, a blank line, then the
    content verbatim. Parts after the first are preceded by
    :data:`SEPARATOR`.
    """
    chunks: list[str] = []
    for i, (name, content) in enumerate(parts):
        if i > 0:
            chunks.append(SEPARATOR)
        chunks.append(f"# {name}\n\n")
        chunks.append(content)
    return "".join(chunks)


def split_body(body: str) -> list[tuple[str, str]]:
    """Split a record body back into ``(heading_name, content)`` pairs.

    Only separators followed by a snapshot heading count as part
    boundaries, so a ``___`` rule inside a snapshot's own content stays
    intact unless a snapshot heading follows it.
    """
    if not body:
        return []
    parts: list[tuple[str, str]] = []
    for segment in _PART_BOUNDARY_RE.split(body):
        m = _HEADING_RE.match(segment)
        if m:
            parts.append((m.group(1), segment[m.end():]))
        else:
            parts.append(("", segment))
    return parts


def consolidate(
    storage: Storage,
    document: EntryRef | None,
    settings: Settings,
) -> ConsolidationResult:
    """Merge every snapshot of *document* into one consolidated record.

    Parameters
    ----------
    storage:
        Vault holding the archive.
    document:
        The active document, or None if there is none.
    settings:
        Resolved settings; ``archive_path`` and ``sort_order`` are used.

    Returns
    -------
    ConsolidationResult
        The new record plus the merged snapshots. Snapshots whose
        deletion failed are listed in ``failed_deletions``; the record
        is kept either way.

    Raises
    ------
    NoActiveDocument
        *document* is None.
    ArchiveMissing
        The archive folder does not exist yet.
    NoSnapshots
        No snapshot of the document is in the archive. Nothing is
        created or deleted.
    StorageFailure
        Listing, reading or creating the record failed. No snapshot has
        been deleted at that point.
    """
    if document is None:
        raise NoActiveDocument()

    base_name = document.name
    folder = normalize_path(settings.archive_path)
    if not storage.exists(folder):
        raise ArchiveMissing(folder)

    matches = find_snapshots(storage, base_name, folder)
    if not matches:
        raise NoSnapshots(base_name)

    ordered = order_snapshots(matches, settings.sort_order)
    log.info(
        "Consolidating %d snapshot(s) of %s (%s)",
        len(ordered), base_name, settings.sort_order,
    )

    parts = [
        (snapshot_name(base_name, s.timestamp), storage.read(s.entry))
        for s in ordered
    ]
    body = build_body(parts)

    start, end = timestamp_range([s.timestamp for s in ordered])
    name = record_name(base_name, start, end)
    record = storage.create(normalize_path(f"{folder}/{name}{ENTRY_SUFFIX}"), body)
    log.info("Consolidated record %s written (%d chars)", record.path, len(body))

    merged = [s.entry for s in ordered]
    failed: list[EntryRef] = []
    for entry in merged:
        try:
            storage.delete(entry)
        except StorageFailure as exc:
            log.error("Could not delete merged snapshot %s: %s", entry.path, exc)
            failed.append(entry)

    if failed:
        log.warning(
            "%d of %d merged snapshot(s) remain alongside %s",
            len(failed), len(merged), record.path,
        )

    return ConsolidationResult(
        name=name,
        entry=record,
        start_timestamp=start,
        end_timestamp=end,
        merged=merged,
        failed_deletions=failed,
    )

"""User-facing actions: create and preserve legacy files.

Each action wraps one core operation, catches each of its error kinds
(:mod:`legacyfile.errors`), logs it with context and returns a short
status message for the user. Actions never raise for those error
kinds, so a failed action can simply be retried. Anything else is a
bug and propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from legacyfile.config import Settings
from legacyfile.consolidate import consolidate
from legacyfile.errors import (
    ArchiveMissing,
    NoActiveDocument,
    NoSnapshots,
    StorageFailure,
)
from legacyfile.naming import ENTRY_SUFFIX
from legacyfile.snapshot import write_snapshot
from legacyfile.storage import EntryRef, Storage

log = logging.getLogger(__name__)

MSG_NO_ACTIVE_DOCUMENT = "No active document."
MSG_ARCHIVE_MISSING = "Legacy folder does not exist."
MSG_NO_SNAPSHOTS = "No legacy files to preserve."
MSG_CREATE_FAILED = "Failed to create legacy file."
MSG_PRESERVE_FAILED = "Failed to preserve legacy files."


@dataclass(frozen=True)
class ActionResult:
    """Status of an action: success flag, message and produced entry name."""
    ok: bool
    message: str
    name: str | None = None


def create_legacy_file(
    storage: Storage,
    document: EntryRef | None,
    settings: Settings,
    now: datetime | None = None,
) -> ActionResult:
    """Snapshot the active document and report the outcome."""
    try:
        result = write_snapshot(storage, document, settings, now=now)
    except NoActiveDocument:
        log.warning("Create legacy file: no active document")
        return ActionResult(False, MSG_NO_ACTIVE_DOCUMENT)
    except StorageFailure as exc:
        log.error("Error creating legacy file for %s: %s", document.path if document else "?", exc)
        return ActionResult(False, MSG_CREATE_FAILED)

    filename = f"{result.name}{ENTRY_SUFFIX}"
    return ActionResult(True, f"Legacy file created: {filename}", result.name)


def preserve_legacy_files(
    storage: Storage,
    document: EntryRef | None,
    settings: Settings,
) -> ActionResult:
    """Consolidate the active document's snapshots and report the outcome.

    Leftover snapshots that could not be deleted are mentioned in the
    message, but the action still counts as successful.
    """
    try:
        result = consolidate(storage, document, settings)
    except NoActiveDocument:
        log.warning("Preserve legacy files: no active document")
        return ActionResult(False, MSG_NO_ACTIVE_DOCUMENT)
    except ArchiveMissing as exc:
        log.warning("Preserve legacy files: %s", exc)
        return ActionResult(False, MSG_ARCHIVE_MISSING)
    except NoSnapshots as exc:
        log.info("Preserve legacy files: %s", exc)
        return ActionResult(False, MSG_NO_SNAPSHOTS)
    except StorageFailure as exc:
        log.error("Error preserving legacy files for %s: %s", document.path if document else "?", exc)
        return ActionResult(False, MSG_PRESERVE_FAILED)

    filename = f"{result.name}{ENTRY_SUFFIX}"
    message = f"Legacy files preserved: {filename}"
    if not result.complete:
        message += f" ({len(result.failed_deletions)} snapshot(s) could not be deleted)"
    return ActionResult(True, message, result.name)

"""Automatic snapshots: watch one document and snapshot it on change.

A ``watchdog`` observer watches the document's folder (non-recursive).
Modify events for the document itself trigger the create-legacy-file
action, throttled to one snapshot per ``min_interval`` seconds.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from legacyfile.actions import ActionResult, create_legacy_file
from legacyfile.config import Settings
from legacyfile.storage import EntryRef, Vault

log = logging.getLogger(__name__)


class _DocumentEventHandler(FileSystemEventHandler):
    """Watchdog handler that calls back when one file is modified."""

    def __init__(self, target: Path, callback: Callable[[], None]) -> None:
        super().__init__()
        self._target = os.path.normcase(str(target.resolve()))
        self._callback = callback

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        # Editors that save via rename show up as a create of the target
        if not event.is_directory:
            self._handle(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle(event.dest_path)

    def _handle(self, path: str | bytes) -> None:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        if os.path.normcase(str(Path(path).resolve())) == self._target:
            self._callback()


class SnapshotWatcher:
    """Snapshot a document whenever it changes on disk.

    Parameters
    ----------
    vault:
        Vault containing the document.
    document:
        Document to watch.
    settings:
        Resolved settings; ``min_interval`` throttles snapshots.
    clock:
        Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        vault: Vault,
        document: EntryRef,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._vault = vault
        self._document = document
        self._settings = settings
        self._clock = clock
        self._last_snapshot: float | None = None
        self._observer: Observer | None = None
        self.results: list[ActionResult] = []

    @property
    def document_path(self) -> Path:
        return self._vault.root / self._document.path

    def on_change(self) -> ActionResult | None:
        """Take a snapshot unless one was taken within ``min_interval``.

        Returns the action result, or None when throttled.
        """
        now = self._clock()
        if (
            self._last_snapshot is not None
            and now - self._last_snapshot < self._settings.min_interval
        ):
            log.debug("Change to %s within min_interval, skipping", self._document.path)
            return None

        result = create_legacy_file(self._vault, self._document, self._settings)
        if result.ok:
            self._last_snapshot = now
            log.info(result.message)
        else:
            log.warning("Automatic snapshot failed: %s", result.message)
        self.results.append(result)
        return result

    def start(self) -> None:
        """Start the filesystem observer."""
        handler = _DocumentEventHandler(self.document_path, self.on_change)
        self._observer = Observer()
        self._observer.schedule(handler, str(self.document_path.parent), recursive=False)
        log.info("Watching: %s", self.document_path)

        self._observer.daemon = True
        self._observer.start()

    def stop(self) -> None:
        """Stop the filesystem observer."""
        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

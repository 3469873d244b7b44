"""Error kinds raised by the snapshot writer and consolidator."""

from __future__ import annotations


class LegacyFileError(Exception):
    """Base class for all legacyfile operation failures."""


class NoActiveDocument(LegacyFileError):
    """Raised when an action is invoked without a document."""

    def __init__(self) -> None:
        super().__init__("No active document")


class ArchiveMissing(LegacyFileError):
    """Raised when consolidating before any snapshot was ever written."""

    def __init__(self, archive_path: str) -> None:
        super().__init__(f"Archive folder does not exist: {archive_path}")
        self.archive_path = archive_path


class NoSnapshots(LegacyFileError):
    """Raised when the archive holds no snapshots for a document."""

    def __init__(self, base_name: str) -> None:
        super().__init__(f"No legacy snapshots for '{base_name}'")
        self.base_name = base_name


class StorageFailure(LegacyFileError):
    """Wraps an underlying read/write/list/delete error.

    The original exception is available as ``cause`` and is also chained
    via ``raise ... from``.
    """

    def __init__(self, operation: str, path: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"Storage {operation} failed for {path}{detail}")
        self.operation = operation
        self.path = path
        self.cause = cause

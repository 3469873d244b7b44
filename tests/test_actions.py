"""Tests for legacyfile.actions: the user-facing action boundary."""

from __future__ import annotations

import logging
import unicodedata
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from legacyfile.actions import (
    MSG_ARCHIVE_MISSING,
    MSG_CREATE_FAILED,
    MSG_NO_ACTIVE_DOCUMENT,
    MSG_NO_SNAPSHOTS,
    MSG_PRESERVE_FAILED,
    create_legacy_file,
    preserve_legacy_files,
)
from legacyfile.config import Settings
from legacyfile.errors import StorageFailure
from legacyfile.storage import EntryRef, Vault


@pytest.fixture
def vault(tmp_path: Path) -> Vault:
    (tmp_path / "note.md").write_text("hello\n")
    return Vault(tmp_path)


@pytest.fixture
def note() -> EntryRef:
    return EntryRef.from_path("note.md")


class TestCreateLegacyFile:
    def test_success_message(self, vault: Vault, note: EntryRef) -> None:
        result = create_legacy_file(vault, note, Settings(), now=datetime(2024, 12, 15, 10, 30, 45))
        assert result.ok
        assert result.name == "note_legacy_20241215103045"
        assert result.message == "Legacy file created: note_legacy_20241215103045.md"

    def test_no_active_document(self, vault: Vault) -> None:
        result = create_legacy_file(vault, None, Settings())
        assert not result.ok
        assert result.message == MSG_NO_ACTIVE_DOCUMENT

    def test_storage_failure_is_caught_and_logged(
        self, vault: Vault, note: EntryRef, caplog: pytest.LogCaptureFixture,
    ) -> None:
        with patch.object(Vault, "create", side_effect=StorageFailure("create", "legacy/x.md")):
            with caplog.at_level(logging.ERROR, logger="legacyfile.actions"):
                result = create_legacy_file(vault, note, Settings())
        assert not result.ok
        assert result.message == MSG_CREATE_FAILED
        assert "Error creating legacy file for note.md" in caplog.text


class TestPreserveLegacyFiles:
    def test_success_message(self, vault: Vault, note: EntryRef) -> None:
        create_legacy_file(vault, note, Settings(), now=datetime(2024, 1, 1, 9, 0, 0))
        create_legacy_file(vault, note, Settings(), now=datetime(2024, 1, 1, 10, 0, 0))

        result = preserve_legacy_files(vault, note, Settings())
        assert result.ok
        assert result.name == "note_legacy_20240101090000-20240101100000"
        assert result.message == "Legacy files preserved: note_legacy_20240101090000-20240101100000.md"

    def test_no_active_document(self, vault: Vault) -> None:
        result = preserve_legacy_files(vault, None, Settings())
        assert (result.ok, result.message) == (False, MSG_NO_ACTIVE_DOCUMENT)

    def test_archive_missing(self, vault: Vault, note: EntryRef) -> None:
        result = preserve_legacy_files(vault, note, Settings())
        assert (result.ok, result.message) == (False, MSG_ARCHIVE_MISSING)

    def test_no_snapshots(self, vault: Vault, note: EntryRef, tmp_path: Path) -> None:
        (tmp_path / "legacy").mkdir()
        result = preserve_legacy_files(vault, note, Settings())
        assert (result.ok, result.message) == (False, MSG_NO_SNAPSHOTS)

    def test_storage_failure(self, vault: Vault, note: EntryRef) -> None:
        create_legacy_file(vault, note, Settings(), now=datetime(2024, 1, 1, 9, 0, 0))
        with patch.object(Vault, "list_all_entries", side_effect=StorageFailure("list", ".")):
            result = preserve_legacy_files(vault, note, Settings())
        assert (result.ok, result.message) == (False, MSG_PRESERVE_FAILED)

    def test_leftover_snapshots_still_succeed(self, vault: Vault, note: EntryRef) -> None:
        create_legacy_file(vault, note, Settings(), now=datetime(2024, 1, 1, 9, 0, 0))
        with patch.object(Vault, "delete", side_effect=StorageFailure("delete", "x")):
            result = preserve_legacy_files(vault, note, Settings())
        assert result.ok
        assert "1 snapshot(s) could not be deleted" in result.message


class TestUndecodableContent:
    def test_create_reports_failure(self, tmp_path: Path, note: EntryRef) -> None:
        (tmp_path / "note.md").write_bytes(b"caf\xe9\n")
        result = create_legacy_file(Vault(tmp_path), note, Settings())
        assert (result.ok, result.message) == (False, MSG_CREATE_FAILED)
        assert not (tmp_path / "legacy").exists()

    def test_preserve_reports_failure(self, tmp_path: Path, note: EntryRef) -> None:
        (tmp_path / "note.md").write_text("hello\n")
        legacy = tmp_path / "legacy"
        legacy.mkdir()
        snapshot = legacy / "note_legacy_20240101090000.md"
        snapshot.write_bytes(b"caf\xe9\n")

        result = preserve_legacy_files(Vault(tmp_path), note, Settings())
        assert (result.ok, result.message) == (False, MSG_PRESERVE_FAILED)
        assert [p.name for p in legacy.iterdir()] == [snapshot.name]


class TestDecomposedFileNames:
    def test_snapshot_and_preserve_nfd_document(self, tmp_path: Path) -> None:
        nfd_name = unicodedata.normalize("NFD", "café.md")
        (tmp_path / nfd_name).write_text("bonjour\n")
        vault = Vault(tmp_path)
        doc = EntryRef.from_path(nfd_name)
        assert doc.name == "café"

        created = create_legacy_file(vault, doc, Settings(), now=datetime(2024, 1, 1, 9, 0, 0))
        assert created.ok

        # A snapshot synced from another system with a decomposed name
        nfd_snapshot = unicodedata.normalize("NFD", "café_legacy_20240101100000.md")
        (tmp_path / "legacy" / nfd_snapshot).write_text("salut\n")

        preserved = preserve_legacy_files(vault, doc, Settings())
        assert preserved.ok
        assert preserved.name == "café_legacy_20240101090000-20240101100000"
        assert len(list((tmp_path / "legacy").iterdir())) == 1


class TestUnexpectedErrors:
    def test_non_storage_errors_propagate(self, vault: Vault, note: EntryRef) -> None:
        with patch.object(Vault, "read", side_effect=RuntimeError("bug")):
            with pytest.raises(RuntimeError, match="bug"):
                create_legacy_file(vault, note, Settings())

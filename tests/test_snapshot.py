"""Tests for legacyfile.snapshot: the snapshot writer."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from legacyfile.config import Settings
from legacyfile.errors import NoActiveDocument, StorageFailure
from legacyfile.snapshot import ensure_archive, write_snapshot
from legacyfile.storage import EntryRef, Vault

T0 = datetime(2024, 1, 1, 9, 0, 0)
T1 = datetime(2024, 1, 1, 10, 0, 0)


@pytest.fixture
def vault(tmp_path: Path) -> Vault:
    notes = tmp_path / "notes"
    notes.mkdir()
    (notes / "draft.md").write_text("# Draft\n\nfirst version\n")
    return Vault(tmp_path)


@pytest.fixture
def draft() -> EntryRef:
    return EntryRef.from_path("notes/draft.md")


class TestWriteSnapshot:
    def test_creates_named_entry(self, vault: Vault, draft: EntryRef, tmp_path: Path) -> None:
        result = write_snapshot(vault, draft, Settings(), now=T0)

        assert result.name == "draft_legacy_20240101090000"
        assert result.timestamp == "20240101090000"
        assert result.entry.path == "legacy/draft_legacy_20240101090000.md"
        written = tmp_path / "legacy" / "draft_legacy_20240101090000.md"
        assert written.read_text() == "# Draft\n\nfirst version\n"

    def test_exactly_one_new_entry(self, vault: Vault, draft: EntryRef) -> None:
        before = {e.path for e in vault.list_all_entries()}
        write_snapshot(vault, draft, Settings(), now=T0)
        after = {e.path for e in vault.list_all_entries()}
        assert after - before == {"legacy/draft_legacy_20240101090000.md"}

    def test_content_captured_at_call_time(self, vault: Vault, draft: EntryRef, tmp_path: Path) -> None:
        write_snapshot(vault, draft, Settings(), now=T0)
        (tmp_path / "notes" / "draft.md").write_text("second version\n")
        write_snapshot(vault, draft, Settings(), now=T1)

        legacy = tmp_path / "legacy"
        assert (legacy / "draft_legacy_20240101090000.md").read_text() == "# Draft\n\nfirst version\n"
        assert (legacy / "draft_legacy_20240101100000.md").read_text() == "second version\n"

    def test_repeated_snapshots_reuse_folder(self, vault: Vault, draft: EntryRef) -> None:
        write_snapshot(vault, draft, Settings(), now=T0)
        write_snapshot(vault, draft, Settings(), now=T1)  # Should not raise

    def test_custom_archive_path_is_normalized(self, vault: Vault, draft: EntryRef, tmp_path: Path) -> None:
        result = write_snapshot(vault, draft, Settings(archive_path="/archive//old/"), now=T0)
        assert result.entry.path == "archive/old/draft_legacy_20240101090000.md"
        assert (tmp_path / "archive" / "old" / "draft_legacy_20240101090000.md").exists()

    def test_does_not_modify_document(self, vault: Vault, draft: EntryRef, tmp_path: Path) -> None:
        write_snapshot(vault, draft, Settings(), now=T0)
        assert (tmp_path / "notes" / "draft.md").read_text() == "# Draft\n\nfirst version\n"

    def test_no_document(self, vault: Vault) -> None:
        with pytest.raises(NoActiveDocument):
            write_snapshot(vault, None, Settings(), now=T0)

    def test_same_second_collision_never_overwrites(self, vault: Vault, draft: EntryRef, tmp_path: Path) -> None:
        write_snapshot(vault, draft, Settings(), now=T0)
        (tmp_path / "notes" / "draft.md").write_text("changed\n")
        with pytest.raises(StorageFailure):
            write_snapshot(vault, draft, Settings(), now=T0)
        written = tmp_path / "legacy" / "draft_legacy_20240101090000.md"
        assert written.read_text() == "# Draft\n\nfirst version\n"

    def test_missing_document_creates_nothing(self, vault: Vault, tmp_path: Path) -> None:
        with pytest.raises(StorageFailure, match="read"):
            write_snapshot(vault, EntryRef.from_path("notes/gone.md"), Settings(), now=T0)
        assert not (tmp_path / "legacy").exists()

    def test_create_failure_leaves_no_file(self, vault: Vault, draft: EntryRef, tmp_path: Path) -> None:
        with patch.object(Vault, "create", side_effect=StorageFailure("create", "x")):
            with pytest.raises(StorageFailure):
                write_snapshot(vault, draft, Settings(), now=T0)
        assert list((tmp_path / "legacy").iterdir()) == []


class TestEnsureArchive:
    def test_creates_once(self, vault: Vault) -> None:
        with patch.object(Vault, "create_folder", wraps=vault.create_folder) as mock_create:
            ensure_archive(vault, "legacy")
            ensure_archive(vault, "legacy")
        assert mock_create.call_count == 1

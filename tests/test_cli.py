"""Smoke tests for the scidigest command line."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from scidigest.cli import main
from scidigest.config import load_config
from scidigest.store import LibraryStore


def _run(home: Path, *args: str, input: str = None):
    return CliRunner().invoke(main, [*args, "--home", str(home)], input=input)


class TestLibraryCommands:
    def test_status_on_fresh_home(self, tmp_home: Path):
        result = _run(tmp_home, "status")
        assert result.exit_code == 0, result.output
        assert "SciDigest Library" in result.output

    def test_article_add_and_list(self, tmp_home: Path):
        result = _run(tmp_home, "article", "add", "Attention", "-a", "Ashish Vaswani", "--queue")
        assert result.exit_code == 0, result.output

        article = LibraryStore.open(tmp_home).load().articles[0]
        assert article.title == "Attention"
        assert article.shelf_ids == ["default-queue"]

        listing = _run(tmp_home, "article", "list")
        assert "Attention" in listing.output

    def test_rate_and_dismiss(self, tmp_home: Path):
        _run(tmp_home, "article", "add", "Paper")
        article_id = LibraryStore.open(tmp_home).load().articles[0].id

        assert _run(tmp_home, "article", "rate", article_id, "9").exit_code == 0
        assert LibraryStore.open(tmp_home).load().articles[0].rating == 9

        assert _run(tmp_home, "article", "dismiss", article_id).exit_code == 0
        assert "Paper" not in _run(tmp_home, "article", "list").output

    def test_rate_out_of_range(self, tmp_home: Path):
        _run(tmp_home, "article", "add", "Paper")
        article_id = LibraryStore.open(tmp_home).load().articles[0].id
        assert _run(tmp_home, "article", "rate", article_id, "12").exit_code != 0

    def test_queue_unknown_shelf_fails(self, tmp_home: Path):
        _run(tmp_home, "article", "add", "Paper")
        article_id = LibraryStore.open(tmp_home).load().articles[0].id
        result = _run(tmp_home, "article", "queue", article_id, "--shelf", "nope")
        assert result.exit_code == 1

    def test_shelf_lifecycle(self, tmp_home: Path):
        assert _run(tmp_home, "shelf", "add", "Later").exit_code == 0
        shelf = LibraryStore.open(tmp_home).load().shelves[-1]
        assert shelf.name == "Later"

        assert _run(tmp_home, "shelf", "delete", shelf.id).exit_code == 0
        assert LibraryStore.open(tmp_home).load().find_shelf(shelf.id) is None

    def test_shelf_delete_queue_is_refused_by_store(self, tmp_home: Path):
        result = _run(tmp_home, "shelf", "delete", "default-queue")
        assert result.exit_code == 0, result.output
        assert "cannot be deleted" in result.output
        assert LibraryStore.open(tmp_home).load().find_shelf("default-queue") is not None

    def test_shelf_delete_unknown(self, tmp_home: Path):
        result = _run(tmp_home, "shelf", "delete", "nope")
        assert result.exit_code == 1
        assert "No shelf" in result.output

    def test_attach_and_fetch_pdf(self, tmp_home: Path, tmp_path: Path):
        _run(tmp_home, "article", "add", "Paper")
        article_id = LibraryStore.open(tmp_home).load().articles[0].id
        source = tmp_path / "paper.pdf"
        source.write_bytes(b"%PDF-1.7 body")

        result = _run(tmp_home, "article", "attach", article_id, str(source))
        assert result.exit_code == 0, result.output

        out = tmp_path / "copy.pdf"
        result = _run(tmp_home, "article", "pdf", article_id, "-o", str(out))
        assert result.exit_code == 0, result.output
        assert out.read_bytes() == b"%PDF-1.7 body"

    def test_attach_to_unknown_article(self, tmp_home: Path, tmp_path: Path):
        source = tmp_path / "paper.pdf"
        source.write_bytes(b"%PDF")
        assert _run(tmp_home, "article", "attach", "ghost", str(source)).exit_code == 1

    def test_pdf_missing(self, tmp_home: Path):
        assert _run(tmp_home, "article", "pdf", "ghost").exit_code == 1

    def test_note_link(self, tmp_home: Path):
        _run(tmp_home, "article", "add", "Paper")
        article_id = LibraryStore.open(tmp_home).load().articles[0].id

        assert _run(tmp_home, "note", "add", "Idea", "--link", article_id).exit_code == 0
        doc = LibraryStore.open(tmp_home).load()
        assert doc.articles[0].note_ids == [doc.notes[0].id]

        assert _run(tmp_home, "note", "unlink", doc.notes[0].id, article_id).exit_code == 0
        assert LibraryStore.open(tmp_home).load().articles[0].note_ids == []

    def test_reset_requires_confirmation(self, tmp_home: Path):
        _run(tmp_home, "article", "add", "Paper")
        result = _run(tmp_home, "reset", input="n\n")
        assert result.exit_code != 0
        assert len(LibraryStore.open(tmp_home).load().articles) == 1

        assert _run(tmp_home, "reset", "--yes").exit_code == 0
        assert LibraryStore.open(tmp_home).load().articles == []


class TestDiagnosticsCommands:
    def test_log_list_and_clear(self, tmp_home: Path):
        LibraryStore.open(tmp_home).add_log("warning", "disk nearly full")
        result = _run(tmp_home, "log", "list", "--json-out")
        assert json.loads(result.output)[0]["message"] == "disk nearly full"

        assert _run(tmp_home, "log", "clear").exit_code == 0
        assert LibraryStore.open(tmp_home).load().logs == []

    def test_usage(self, tmp_home: Path):
        result = _run(tmp_home, "usage")
        assert result.exit_code == 0, result.output
        assert "AI Usage" in result.output


class TestBackupCommands:
    def test_export_then_import(self, tmp_home: Path, tmp_path: Path):
        _run(tmp_home, "article", "add", "Portable")
        backup_file = tmp_path / "backup.json"
        assert _run(tmp_home, "backup", "export", "-o", str(backup_file)).exit_code == 0

        other = tmp_path / "other"
        result = _run(other, "backup", "import", str(backup_file))
        assert result.exit_code == 0, result.output
        assert LibraryStore.open(other).load().articles[0].title == "Portable"

    def test_import_rejects_bad_backup(self, tmp_home: Path, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text("{}")
        result = _run(tmp_home, "backup", "import", str(bad))
        assert result.exit_code == 1
        assert "Import failed" in result.output

    def test_bibtex(self, tmp_home: Path):
        _run(tmp_home, "article", "add", "Quantum Computing", "-a", "John Smith", "--date", "2023-05-15")
        result = _run(tmp_home, "export", "bibtex")
        assert "@article{smith2023quantum," in result.output


class TestSyncCommands:
    def test_key_set_invalid(self, tmp_home: Path):
        result = _run(tmp_home, "sync", "key", "--set", "nope")
        assert result.exit_code == 1

    def test_key_set_valid(self, tmp_home: Path):
        assert _run(tmp_home, "sync", "key", "--set", "a" * 32).exit_code == 0
        assert LibraryStore.open(tmp_home).get_sync_key(create=False) == "a" * 32

    def test_connect_push_pull(self, tmp_home: Path, tmp_path: Path):
        remote = tmp_path / "remote"
        result = _run(tmp_home, "sync", "connect", "--path", str(remote))
        assert result.exit_code == 0, result.output
        assert load_config(tmp_home).sync.enabled is True

        _run(tmp_home, "article", "add", "Synced paper")
        assert list(remote.glob("*.meta.json"))

        assert _run(tmp_home, "sync", "push").exit_code == 0
        pull = _run(tmp_home, "sync", "pull")
        assert pull.exit_code == 0, pull.output
        assert LibraryStore.open(tmp_home).load().articles[0].title == "Synced paper"

    def test_status(self, tmp_home: Path):
        result = _run(tmp_home, "sync", "status")
        assert result.exit_code == 0, result.output
        assert "Cloud Sync" in result.output

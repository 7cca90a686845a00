"""Tests for the ``harvest`` CLI.

The model client and the Drive connection are monkeypatched; every path in
``settings`` points into ``tmp_path``.
"""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from cli.main import app
from harvester.ai import taxonomy
from harvester.storage.sync import ArchivalSync

from conftest import FakeObjectStore, ScriptedClient

runner = CliRunner()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.setattr("harvester.config.settings.downloads_dir", tmp_path / "downloads")
    monkeypatch.setattr("harvester.config.settings.data_dir", tmp_path / "data")
    monkeypatch.setattr("harvester.config.settings.sort_throttle", 0.0)
    monkeypatch.setattr("harvester.config.settings.drive_folder_id", "")
    (tmp_path / "downloads").mkdir()
    return tmp_path


def _use_client(monkeypatch, client: ScriptedClient) -> None:
    monkeypatch.setattr("cli.main._classification_client", lambda: client)


def _use_store(monkeypatch, store: FakeObjectStore) -> None:
    monkeypatch.setattr("cli.commands.archive.open_sync", lambda: ArchivalSync(store))


class TestFilterCheck:
    def test_prints_verdict(self, workspace, monkeypatch) -> None:
        _use_client(
            monkeypatch,
            ScriptedClient({"shouldDownload": True, "confidence": 0.88, "reasoning": "Past paper"}),
        )
        result = runner.invoke(app, ["filter-check", "https://e.com/paper.pdf", "--text", "Paper"])

        assert result.exit_code == 0
        assert "DOWNLOAD" in result.stdout
        assert "0.88" in result.stdout
        assert "Past paper" in result.stdout

    def test_min_confidence_override(self, workspace, monkeypatch) -> None:
        _use_client(
            monkeypatch,
            ScriptedClient({"shouldDownload": True, "confidence": 0.7, "reasoning": "ok"}),
        )
        result = runner.invoke(
            app, ["filter-check", "https://e.com/paper.pdf", "--min-confidence", "0.9"]
        )

        assert result.exit_code == 0
        assert "SKIP" in result.stdout
        assert "below threshold 0.9" in result.stdout


class TestSort:
    def test_sorts_downloads_and_records_mappings(self, workspace, monkeypatch) -> None:
        finished = workspace / "downloads" / "finished"
        finished.mkdir()
        (finished / "cells.pdf").write_bytes(b"x")
        _use_client(
            monkeypatch,
            ScriptedClient({"grade": "SHS1", "subject": "Biology", "confidence": 0.9}),
        )

        result = runner.invoke(app, ["sort", "--no-pdf-context"])

        assert result.exit_code == 0, result.stdout
        assert "Sorted: 1" in result.stdout
        assert (workspace / "downloads" / "SHS1" / "Biology" / "cells.pdf").exists()
        mappings = json.loads((workspace / "data" / "file_mappings.json").read_text())
        assert mappings[0]["curriculum_node_id"] == "SHS1/Biology"

    def test_missing_root(self, workspace, monkeypatch) -> None:
        _use_client(monkeypatch, ScriptedClient())
        result = runner.invoke(app, ["sort", "--root", str(workspace / "nope")])
        assert result.exit_code == 1


class TestRemoteCommands:
    def test_resort_remote_requires_folder_id(self, workspace, monkeypatch) -> None:
        _use_client(monkeypatch, ScriptedClient())
        result = runner.invoke(app, ["resort-remote"])
        assert result.exit_code == 1
        assert "DRIVE_FOLDER_ID" in result.stdout

    def test_resort_remote(self, workspace, monkeypatch) -> None:
        store = FakeObjectStore()
        root = store.add_folder("Archive", None)
        review = store.add_folder(taxonomy.REVIEW_NEEDED, root.id)
        store.add_file("chem.pdf", review.id)
        _use_store(monkeypatch, store)
        _use_client(
            monkeypatch,
            ScriptedClient({"grade": "SHS3", "subject": "Chemistry", "confidence": 0.95}),
        )

        result = runner.invoke(app, ["resort-remote", "--folder-id", root.id])

        assert result.exit_code == 0, result.stdout
        assert "Moved: 1" in result.stdout
        assert store.children(review.id) == []

    def test_archive_sync(self, workspace, monkeypatch) -> None:
        store = FakeObjectStore()
        root = store.add_folder("Archive", None)
        _use_store(monkeypatch, store)
        folder = workspace / "downloads" / "SHS1"
        folder.mkdir()
        (folder / "a.pdf").write_bytes(b"a")

        result = runner.invoke(app, ["archive", "sync", "--folder-id", root.id])

        assert result.exit_code == 0, result.stdout
        assert "Uploaded: 1" in result.stdout
        assert store.uploads == ["a.pdf"]

    def test_archive_purge_needs_confirmation(self, workspace, monkeypatch) -> None:
        store = FakeObjectStore()
        root = store.add_folder("Archive", None)
        store.add_file("a.pdf", root.id)
        _use_store(monkeypatch, store)

        refused = runner.invoke(app, ["archive", "purge", "--folder-id", root.id])
        assert refused.exit_code == 1
        assert store.children(root.id)

        confirmed = runner.invoke(app, ["archive", "purge", "--folder-id", root.id, "--yes"])
        assert confirmed.exit_code == 0
        assert store.children(root.id) == []


class TestStats:
    def test_show_and_reset(self, workspace) -> None:
        data_dir = workspace / "data"
        data_dir.mkdir()
        (data_dir / "stats.json").write_text(json.dumps({"total_downloaded": 3}))

        shown = runner.invoke(app, ["stats", "show", "--json"])
        assert shown.exit_code == 0
        assert json.loads(shown.stdout)["total_downloaded"] == 3

        assert runner.invoke(app, ["stats", "reset"]).exit_code == 0
        shown = runner.invoke(app, ["stats", "show"])
        assert "Downloaded      : 0" in shown.stdout

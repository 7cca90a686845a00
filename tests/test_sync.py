"""Tests for ArchivalSync against the in-memory object store."""

from __future__ import annotations

from harvester.models import FOLDER_MIME_TYPE
from harvester.storage.sync import ArchivalSync, guess_mime_type


def _tree(root) -> None:
    (root / "SHS1" / "Biology").mkdir(parents=True)
    (root / "SHS1" / "Biology" / "cells.pdf").write_bytes(b"cells")
    (root / "SHS1" / "overview.docx").write_bytes(b"overview")
    (root / "Review_Needed").mkdir()
    (root / "Review_Needed" / "unknown.pdf").write_bytes(b"?")
    (root / "incoming").mkdir()
    (root / "incoming" / "half.pdf.abc.part").write_bytes(b"partial")
    (root / ".DS_Store").write_bytes(b"junk")
    (root / "index.pdf").write_bytes(b"index")


class TestFolders:
    def test_get_or_create_is_idempotent(self, object_store) -> None:
        root = object_store.add_folder("Archive", None)
        sync = ArchivalSync(object_store)

        first = sync.get_or_create_folder("SHS1", root.id)
        second = sync.get_or_create_folder("SHS1", root.id)

        assert first == second
        assert len(object_store.children(root.id)) == 1

    def test_find_folder_ignores_files_with_same_name(self, object_store) -> None:
        root = object_store.add_folder("Archive", None)
        object_store.add_file("Review_Needed", root.id)
        assert ArchivalSync(object_store).find_folder("Review_Needed", root.id) is None

    def test_storage_failure_returns_none(self, object_store) -> None:
        object_store.fail_on.add("find")
        assert ArchivalSync(object_store).get_or_create_folder("SHS1", "root") is None


class TestUpload:
    def test_second_upload_returns_same_id_without_transfer(self, tmp_path, object_store) -> None:
        root = object_store.add_folder("Archive", None)
        path = tmp_path / "cells.pdf"
        path.write_bytes(b"cells")
        sync = ArchivalSync(object_store)

        first = sync.upload(path, root.id)
        second = sync.upload(path, root.id)

        assert first is not None
        assert first == second
        assert object_store.uploads == ["cells.pdf"]

    def test_upload_failure_returns_none(self, tmp_path, object_store) -> None:
        object_store.fail_on.add("upload_file")
        path = tmp_path / "cells.pdf"
        path.write_bytes(b"cells")
        assert ArchivalSync(object_store).upload(path, "root") is None

    def test_mime_type_guess(self, tmp_path) -> None:
        assert guess_mime_type(tmp_path / "a.pdf") == "application/pdf"
        assert guess_mime_type(tmp_path / "a.unknownext") == "application/octet-stream"


class TestMirror:
    def test_mirror_recreates_tree_and_skips_staging(self, tmp_path, object_store) -> None:
        _tree(tmp_path)
        root = object_store.add_folder("Archive", None)

        report = ArchivalSync(object_store).mirror(tmp_path, root.id)

        names = {i.name for i in object_store.items.values()}
        assert "incoming" not in names
        assert "half.pdf.abc.part" not in names
        assert ".DS_Store" not in names
        assert sorted(object_store.uploads) == ["cells.pdf", "index.pdf", "overview.docx", "unknown.pdf"]
        assert report.folders == 3
        assert report.failed == []

        shs1 = object_store.find("SHS1", root.id, FOLDER_MIME_TYPE)[0]
        biology = object_store.find("Biology", shs1.id, FOLDER_MIME_TYPE)[0]
        assert [i.name for i in object_store.children(biology.id)] == ["cells.pdf"]

    def test_mirror_uploads_leaf_first(self, tmp_path, object_store) -> None:
        _tree(tmp_path)
        root = object_store.add_folder("Archive", None)
        ArchivalSync(object_store).mirror(tmp_path, root.id)

        order = object_store.uploads
        assert order.index("cells.pdf") < order.index("overview.docx") < order.index("index.pdf")

    def test_second_mirror_transfers_nothing(self, tmp_path, object_store) -> None:
        _tree(tmp_path)
        root = object_store.add_folder("Archive", None)
        sync = ArchivalSync(object_store)
        sync.mirror(tmp_path, root.id)
        uploads_before = list(object_store.uploads)

        sync.mirror(tmp_path, root.id)

        assert object_store.uploads == uploads_before

    def test_auto_cleanup_deletes_uploaded_files(self, tmp_path, object_store) -> None:
        _tree(tmp_path)
        root = object_store.add_folder("Archive", None)

        report = ArchivalSync(object_store, auto_cleanup=True).mirror(tmp_path, root.id)

        assert len(report.cleaned) == 4
        assert not (tmp_path / "SHS1" / "Biology" / "cells.pdf").exists()
        assert (tmp_path / "incoming" / "half.pdf.abc.part").exists()

    def test_failed_uploads_are_reported_and_kept(self, tmp_path, object_store) -> None:
        _tree(tmp_path)
        root = object_store.add_folder("Archive", None)
        object_store.fail_on.add("upload_file")

        report = ArchivalSync(object_store, auto_cleanup=True).mirror(tmp_path, root.id)

        assert len(report.failed) == 4
        assert report.cleaned == []
        assert (tmp_path / "index.pdf").exists()


class TestMoveAndPurge:
    def test_move_reparents_item(self, object_store) -> None:
        root = object_store.add_folder("Archive", None)
        review = object_store.add_folder("Review_Needed", root.id)
        target = object_store.add_folder("Physics", root.id)
        item = object_store.add_file("waves.pdf", review.id)

        assert ArchivalSync(object_store).move(item.id, review.id, target.id) is True
        assert object_store.items[item.id].parent_id == target.id

    def test_move_failure(self, object_store) -> None:
        object_store.fail_on.add("move")
        assert ArchivalSync(object_store).move("x", "a", "b") is False

    def test_list_files_excludes_folders(self, object_store) -> None:
        root = object_store.add_folder("Archive", None)
        object_store.add_folder("SHS1", root.id)
        object_store.add_file("a.pdf", root.id)
        assert [i.name for i in ArchivalSync(object_store).list_files(root.id)] == ["a.pdf"]

    def test_purge_deletes_children_only(self, object_store) -> None:
        root = object_store.add_folder("Archive", None)
        object_store.add_folder("SHS1", root.id)
        object_store.add_file("a.pdf", root.id)

        deleted, failed = ArchivalSync(object_store).purge(root.id)

        assert (deleted, failed) == (2, 0)
        assert root.id in object_store.items
        assert object_store.children(root.id) == []

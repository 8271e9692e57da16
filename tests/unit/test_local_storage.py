from pathlib import Path
from unittest.mock import patch

import pytest

from app.pipeline.exceptions import UploadError
from app.storage.local_storage import LocalObjectStorage


class TestLocalObjectStorage:
    def test_writes_file_and_returns_file_uri(self, tmp_path: Path) -> None:
        storage = LocalObjectStorage(tmp_path, chunk_size=4)

        url = storage.upload("documentos/u1/rg.png", b"0123456789", "image/png", lambda *_: None)

        target = tmp_path / "documentos" / "u1" / "rg.png"
        assert target.read_bytes() == b"0123456789"
        assert url == target.resolve().as_uri()
        assert list(target.parent.iterdir()) == [target]

    def test_reports_cumulative_progress_per_chunk(self, tmp_path: Path) -> None:
        storage = LocalObjectStorage(tmp_path, chunk_size=4)
        calls: list[tuple[int, int]] = []

        storage.upload("a/b.png", b"0123456789", "image/png", lambda sent, total: calls.append((sent, total)))

        assert calls == [(4, 10), (8, 10), (10, 10)]

    def test_overwrites_previous_object(self, tmp_path: Path) -> None:
        storage = LocalObjectStorage(tmp_path)
        storage.upload("documentos/u1/rg.png", b"old", "image/png", lambda *_: None)

        storage.upload("documentos/u1/rg.png", b"new", "image/png", lambda *_: None)

        assert (tmp_path / "documentos" / "u1" / "rg.png").read_bytes() == b"new"

    def test_rejects_paths_outside_root(self, tmp_path: Path) -> None:
        storage = LocalObjectStorage(tmp_path / "root")

        with pytest.raises(UploadError, match="escapes the storage root"):
            storage.upload("../outside.png", b"x", "image/png", lambda *_: None)

    def test_wraps_os_errors(self, tmp_path: Path) -> None:
        storage = LocalObjectStorage(tmp_path)

        with patch(
            "app.storage.local_storage.tempfile.NamedTemporaryFile",
            side_effect=PermissionError("read-only"),
        ):
            with pytest.raises(UploadError, match="read-only"):
                storage.upload("a/b.png", b"x", "image/png", lambda *_: None)

    def test_aborted_write_keeps_previous_object_and_no_scratch_file(self, tmp_path: Path) -> None:
        storage = LocalObjectStorage(tmp_path, chunk_size=4)
        storage.upload("documentos/u1/rg.png", b"old", "image/png", lambda *_: None)

        def abort(sent: int, _total: int) -> None:
            if sent >= 8:
                raise UploadError("Upload to documentos/u1/rg.png was abandoned")

        with pytest.raises(UploadError, match="abandoned"):
            storage.upload("documentos/u1/rg.png", b"0123456789", "image/png", abort)

        folder = tmp_path / "documentos" / "u1"
        assert (folder / "rg.png").read_bytes() == b"old"
        assert list(folder.iterdir()) == [folder / "rg.png"]

    def test_each_write_uses_its_own_scratch_file(self, tmp_path: Path) -> None:
        storage = LocalObjectStorage(tmp_path, chunk_size=4)
        scratch_files: list[set[Path]] = []
        folder = tmp_path / "documentos" / "u1"

        def snapshot(*_: int) -> None:
            scratch_files.append({p for p in folder.iterdir() if p.suffix == ".part"})

        storage.upload("documentos/u1/rg.png", b"first", "image/png", snapshot)
        storage.upload("documentos/u1/rg.png", b"second", "image/png", snapshot)

        first, second = scratch_files[0], scratch_files[-1]
        assert len(first) == 1 and len(second) == 1
        assert first != second

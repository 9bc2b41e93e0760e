"""
Unit tests for FileAssetStore.
"""

from datetime import datetime, timezone

import pytest

from catalog_sync.assets import FileAssetStore


def fixed_now():
    return datetime(2024, 5, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    return FileAssetStore(tmp_path / "uploads", now=fixed_now)


@pytest.mark.unit
class TestFileAssetStore:
    """Tests for writing, deleting and folder cleanup."""

    def test_write_under_month_folder(self, store):
        path = store.write("chair.jpg", b"img")

        assert path == "2024/05/chair.jpg"
        assert (store.base_dir / path).read_bytes() == b"img"

    def test_name_collision_gets_suffix(self, store):
        assert store.write("chair.jpg", b"1") == "2024/05/chair.jpg"
        assert store.write("chair.jpg", b"2") == "2024/05/chair-1.jpg"
        assert store.write("chair.jpg", b"3") == "2024/05/chair-2.jpg"

    def test_unsafe_names_sanitized(self, store):
        assert store.write("", b"x") == "2024/05/asset"
        assert store.write("a:b.png", b"x") == "2024/05/a_b.png"

        long_name = "x" * 150 + ".jpg"
        stored = store.write(long_name, b"x").split("/")[-1]
        assert len(stored) == 100
        assert stored.endswith(".jpg")

    def test_delete(self, store):
        path = store.write("chair.jpg", b"img")

        assert store.delete(path) is True
        assert not (store.base_dir / path).exists()
        assert store.delete(path) is False
        assert store.delete(None) is False

    def test_remove_empty_dirs(self, store):
        path = store.write("chair.jpg", b"img")
        store.delete(path)

        assert store.remove_empty_dirs("2024/05") is True
        assert not (store.base_dir / "2024" / "05").exists()

    def test_remove_keeps_folder_with_files(self, store):
        store.write("chair.jpg", b"img")
        (store.base_dir / "2024" / "05" / "thumbs").mkdir()

        assert store.remove_empty_dirs("2024/05") is False
        assert not (store.base_dir / "2024" / "05" / "thumbs").exists()
        assert (store.base_dir / "2024" / "05" / "chair.jpg").exists()

    def test_remove_missing_folder(self, store):
        assert store.remove_empty_dirs("1999/01") is False

"""
Tests for the disk cache directory and filename validation.
"""

import pytest

from gateway.errors import InvalidFilename, TransientFetchError
from gateway.storage import DiskCache, sanitize_filename


class TestSanitizeFilename:
    """Only single, ordinary path segments are accepted."""

    @pytest.mark.parametrize(
        "filename",
        [
            "photo.jpg",
            "IMG_2024-01-01 12.00.00.png",
            ".hidden",
            "voice note.ogg",
            "video.part",
            ".photo.jpg.1234.part",
            "a" * 251 + ".jpg",
        ],
    )
    def test_accepts_plain_names(self, filename):
        assert sanitize_filename(filename) == filename

    @pytest.mark.parametrize(
        "filename",
        [
            "",
            "   ",
            ".",
            "..",
            "../../etc/passwd",
            "/etc/passwd",
            "sub/dir.jpg",
            "..\\windows\\system.ini",
            "name\x00.jpg",
            ".0123456789abcdef0123456789abcdef.part",
            "a" * 252 + ".jpg",
            "\u00e9" * 128,
        ],
    )
    def test_rejects_unsafe_names(self, filename):
        with pytest.raises(InvalidFilename):
            sanitize_filename(filename)

    def test_invalid_filename_is_value_error(self):
        """Callers catching ValueError still see validation failures."""
        with pytest.raises(ValueError):
            sanitize_filename("../secret")


class TestDiskCache:
    """Writes are atomic and never leave partial files behind."""

    def test_path_for_stays_inside_directory(self, cache_dir):
        disk = DiskCache(str(cache_dir))
        path = disk.path_for("a.jpg")
        assert path.parent.resolve() == cache_dir.resolve()

    def test_path_for_rejects_traversal(self, cache_dir):
        disk = DiskCache(str(cache_dir))
        with pytest.raises(InvalidFilename):
            disk.path_for("../../etc/passwd")

    def test_path_for_rejects_symlink_escape(self, cache_dir, tmp_path):
        outside = tmp_path / "outside.txt"
        outside.write_text("secret")
        (cache_dir / "link.txt").symlink_to(outside)

        disk = DiskCache(str(cache_dir))
        with pytest.raises(InvalidFilename):
            disk.path_for("link.txt")

    def test_write_with_renames_into_place(self, cache_dir):
        disk = DiskCache(str(cache_dir))

        path = disk.write_with("a.jpg", lambda temp: temp.write_bytes(b"data"))

        assert path == cache_dir / "a.jpg"
        assert path.read_bytes() == b"data"
        assert sorted(p.name for p in cache_dir.iterdir()) == ["a.jpg"]

    def test_failed_write_leaves_nothing(self, cache_dir):
        disk = DiskCache(str(cache_dir))

        def writer(temp):
            temp.write_bytes(b"half")
            raise TransientFetchError("connection reset")

        with pytest.raises(TransientFetchError):
            disk.write_with("a.jpg", writer)

        assert list(cache_dir.iterdir()) == [], "Partial file should be removed"

    def test_delete_missing_file_is_not_an_error(self, cache_dir):
        disk = DiskCache(str(cache_dir))
        assert disk.delete("never-cached.jpg") is False

    def test_delete_removes_file(self, cache_dir):
        disk = DiskCache(str(cache_dir))
        (cache_dir / "a.jpg").write_bytes(b"x")

        assert disk.delete("a.jpg") is True
        assert not (cache_dir / "a.jpg").exists()

    def test_write_with_accepts_longest_allowed_name(self, cache_dir):
        """Temporary names do not grow with the key."""
        disk = DiskCache(str(cache_dir))
        filename = "a" * 251 + ".jpg"

        path = disk.write_with(filename, lambda temp: temp.write_bytes(b"data"))

        assert path.name == filename
        assert path.read_bytes() == b"data"

    def test_purge_partials(self, cache_dir):
        (cache_dir / ".0123456789abcdef0123456789abcdef.part").write_bytes(b"x")
        scratch = cache_dir / ".fedcba9876543210fedcba9876543210.part"
        scratch.mkdir()
        (scratch / "download.partial").write_bytes(b"x")
        (cache_dir / "b.jpg").write_bytes(b"y")
        (cache_dir / "video.part").write_bytes(b"z")
        disk = DiskCache(str(cache_dir))

        assert disk.purge_partials() == 2
        assert sorted(p.name for p in cache_dir.iterdir()) == ["b.jpg", "video.part"]

    def test_creates_missing_directory(self, tmp_path):
        target = tmp_path / "nested" / "cache"
        DiskCache(str(target))
        assert target.is_dir()

"""
Tests for media naming and content hashing.
"""

import hashlib
import tempfile
import unittest
from pathlib import Path

from src.backend.fs.hashing import compute_bytes_hash, compute_file_hash, normalize_hash
from src.backend.fs.naming import (
    UNKNOWN_ARTIST,
    generate_media_filename,
    get_extension_from_url,
    normalize_extension,
    pick_primary_artist,
    sanitize_slug,
)
from src.backend.fs.storage import LibraryStorage


class TestNaming(unittest.TestCase):
    def test_generate_filename_format(self):
        self.assertEqual(generate_media_filename("painter", "e621", "123", "png"), "painter_e621_123.png")

    def test_dup_suffix(self):
        self.assertEqual(
            generate_media_filename("painter", "furaffinity", "9", ".JPG", dup_index=2),
            "painter_furaffinity_9_dup2.jpg",
        )

    def test_empty_extension_rejected(self):
        with self.assertRaises(ValueError):
            generate_media_filename("painter", "e621", "1", "")
        with self.assertRaises(ValueError):
            generate_media_filename("painter", "e621", "1", ".")

    def test_normalize_extension(self):
        self.assertEqual(normalize_extension(".JPG"), "jpg")
        self.assertIsNone(normalize_extension("../x"))
        self.assertIsNone(normalize_extension("x" * 11))
        self.assertIsNone(normalize_extension("p\u00e9g"))

    def test_sanitize_slug(self):
        self.assertEqual(sanitize_slug("Some Artist"), "some_artist")
        self.assertEqual(sanitize_slug('a/b\\c:d*e?f"g<h>i|j'), "abcdefghij")
        self.assertEqual(sanitize_slug("   "), UNKNOWN_ARTIST)

    def test_pick_primary_artist_skips_warning_tags(self):
        self.assertEqual(pick_primary_artist(["sound_warning", "conditional_dnp", "painter"]), "painter")
        self.assertEqual(pick_primary_artist([]), UNKNOWN_ARTIST)

    def test_extension_from_url(self):
        self.assertEqual(get_extension_from_url("https://x.net/a/b/file.PNG?x=1"), "png")
        self.assertEqual(get_extension_from_url("https://x.net/a/b/file"), "jpg")
        self.assertEqual(get_extension_from_url("https://x.net/a/b/file", default="bin"), "bin")


class TestHashing(unittest.TestCase):
    def test_bytes_hash_is_md5(self):
        self.assertEqual(compute_bytes_hash(b"abc"), hashlib.md5(b"abc").hexdigest())

    def test_file_hash_matches_bytes_hash(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "f.bin"
            data = b"x" * 200_000
            path.write_bytes(data)
            self.assertEqual(compute_file_hash(path), compute_bytes_hash(data))

    def test_normalize_hash(self):
        self.assertEqual(normalize_hash(" ABCDEF0123456789ABCDEF0123456789 "), "abcdef0123456789abcdef0123456789")
        self.assertIsNone(normalize_hash("abc"))
        self.assertIsNone(normalize_hash("z" * 32))
        self.assertIsNone(normalize_hash(None))


class TestLibraryStorage(unittest.TestCase):
    def test_layout(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = LibraryStorage(Path(tmpdir) / "lib")
            paths = storage.ensure_layout()
            self.assertTrue(paths.media.is_dir())
            self.assertTrue(paths.tmp.is_dir())
            self.assertEqual(paths.db_file.name, "library.sqlite")
            self.assertEqual(storage.relative_media_path("a.png"), "media/a.png")
            self.assertEqual(storage.resolve("media/a.png"), paths.media / "a.png")


if __name__ == "__main__":
    unittest.main()

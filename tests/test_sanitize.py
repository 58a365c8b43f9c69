"""Tests for filename sanitization and storage naming."""

from audio_resolver.sanitize import sanitize_filename, storage_name


class TestSanitizeFilename:
    def test_replaces_unsafe_chars(self):
        assert sanitize_filename('a/b\\c:"d') == "a_b_c_d"

    def test_replaces_control_chars(self):
        assert sanitize_filename("a\x00b\nc") == "a_b_c"

    def test_removes_leading_dots(self):
        assert sanitize_filename("..hidden") == "hidden"

    def test_path_traversal_neutralized(self):
        assert sanitize_filename("../../etc/passwd") == "etc_passwd"

    def test_collapses_underscores(self):
        assert sanitize_filename("a___b") == "a_b"

    def test_preserves_normal_names(self):
        assert sanitize_filename("track_01.m4a") == "track_01.m4a"

    def test_truncation_preserves_extension(self):
        result = sanitize_filename("a" * 300 + ".m4a")
        assert result.endswith(".m4a")
        assert len(result.encode("utf-8")) <= 255

    def test_truncation_without_extension(self):
        result = sanitize_filename("a" * 300)
        assert len(result.encode("utf-8")) <= 255

    def test_removes_trailing_dots(self):
        assert sanitize_filename("name...") == "name"


class TestStorageName:
    def test_id_and_format(self):
        assert storage_name("track1", "m4a") == "track1.m4a"

    def test_deterministic(self):
        assert storage_name("x", "mp3") == storage_name("x", "mp3")

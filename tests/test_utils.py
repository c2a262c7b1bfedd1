"""Unit tests for utility functions."""

import pytest

from pyclouddrive.exceptions import CloudDriveConfigError
from pyclouddrive.utils import (
    DEFAULT_CONTENT_TYPES,
    content_type_for,
    format_size,
    normalize_extension,
    parse_extension_option,
    split_remote_path,
    validate_content_types,
)


class TestNormalizeExtension:
    """Tests for normalize_extension function."""

    def test_adds_dot_and_lowercases(self):
        assert normalize_extension("JPG") == ".jpg"
        assert normalize_extension(".Png") == ".png"
        assert normalize_extension(" .gif ") == ".gif"


class TestValidateContentTypes:
    """Tests for validate_content_types function."""

    def test_default_table_is_valid(self):
        assert validate_content_types(DEFAULT_CONTENT_TYPES) == DEFAULT_CONTENT_TYPES

    def test_keys_are_normalized(self):
        table = {"JPG": "image/jpeg", ".PNG": " image/png "}

        assert validate_content_types(table) == {
            ".jpg": "image/jpeg",
            ".png": "image/png",
        }

    def test_returns_copy(self):
        table = {".jpg": "image/jpeg"}

        result = validate_content_types(table)
        result[".png"] = "image/png"

        assert table == {".jpg": "image/jpeg"}

    def test_empty_table_raises(self):
        with pytest.raises(CloudDriveConfigError, match="empty"):
            validate_content_types({})

    def test_empty_extension_raises(self):
        with pytest.raises(CloudDriveConfigError):
            validate_content_types({"": "image/jpeg"})

    @pytest.mark.parametrize("mime", ["", "jpeg", "image/", "image/jp eg", 42])
    def test_invalid_mime_raises(self, mime):
        with pytest.raises(CloudDriveConfigError, match="Invalid MIME type"):
            validate_content_types({".jpg": mime})

    def test_mime_with_suffix_is_accepted(self):
        table = {".svg": "image/svg+xml"}

        assert validate_content_types(table) == table


class TestParseExtensionOption:
    """Tests for parse_extension_option function."""

    def test_valid_option(self):
        assert parse_extension_option(".jpg=image/jpeg") == (".jpg", "image/jpeg")

    def test_extension_without_dot(self):
        assert parse_extension_option("PNG=image/png") == (".png", "image/png")

    @pytest.mark.parametrize("value", ["jpg", "=image/jpeg", ".jpg=", ""])
    def test_malformed_option_raises(self, value):
        with pytest.raises(CloudDriveConfigError, match="Invalid extension mapping"):
            parse_extension_option(value)


class TestContentTypeFor:
    """Tests for content_type_for function."""

    TABLE = {".jpg": "image/jpeg", ".png": "image/png"}

    def test_known_extension(self):
        assert content_type_for("photo.jpg", self.TABLE) == "image/jpeg"

    def test_extension_case_is_ignored(self):
        assert content_type_for("PHOTO.JPG", self.TABLE) == "image/jpeg"

    def test_last_suffix_counts(self):
        assert content_type_for("archive.jpg.png", self.TABLE) == "image/png"
        assert content_type_for("photo.jpg.bak", self.TABLE) is None

    def test_unknown_extension(self):
        assert content_type_for("notes.txt", self.TABLE) is None

    def test_no_extension(self):
        assert content_type_for("README", self.TABLE) is None

    def test_dotfile_is_not_an_extension(self):
        assert content_type_for(".jpg", self.TABLE) is None


class TestSplitRemotePath:
    """Tests for split_remote_path function."""

    def test_root(self):
        assert split_remote_path("/") == []
        assert split_remote_path("") == []
        assert split_remote_path(None) == []

    def test_nested_path(self):
        assert split_remote_path("/Backup/Photos/") == ["Backup", "Photos"]

    def test_repeated_slashes(self):
        assert split_remote_path("Backup//Photos") == ["Backup", "Photos"]


class TestFormatSize:
    """Tests for format_size function."""

    def test_bytes(self):
        assert format_size(0) == "0 B"
        assert format_size(1023) == "1023 B"

    def test_kilobytes(self):
        assert format_size(1024) == "1.0 KB"
        assert format_size(1536) == "1.5 KB"

    def test_megabytes(self):
        assert format_size(1024 * 1024) == "1.0 MB"

    def test_gigabytes(self):
        assert format_size(1024 * 1024 * 1024) == "1.0 GB"

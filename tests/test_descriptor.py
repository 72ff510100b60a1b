"""Tests for SourceDescriptor parsing."""

import tempfile
from pathlib import Path

import pytest
from app_sources import DescriptorError
from app_sources import SourceDescriptor
from app_sources import StripLevels
from app_sources import StripMode
from pydantic import ValidationError


def test_from_file_full():
    """Test loading every recognized key."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "app.src"
        path.write_text(
            """# upstream release
SOURCE_URL=https://example.org/wiki-2.3.zip
SOURCE_SUM=d41d8cd98f00b204e9800998ecf8427e
SOURCE_SUM_PRG=md5sum
SOURCE_FORMAT=ZIP
SOURCE_IN_SUBDIR=false
SOURCE_FILENAME=wiki.zip
SOURCE_EXTRACT=true
"""
        )

        descriptor = SourceDescriptor.from_file(path)

        assert descriptor.source_id == "app"
        assert descriptor.url == "https://example.org/wiki-2.3.zip"
        assert descriptor.checksum == "d41d8cd98f00b204e9800998ecf8427e"
        assert descriptor.checksum_algorithm == "md5"
        assert descriptor.format == "zip"
        assert descriptor.strip_levels == StripLevels.disabled()
        assert descriptor.filename == "wiki.zip"
        assert descriptor.extract is True


def test_defaults():
    """Test defaults when only URL and checksum are given."""
    descriptor = SourceDescriptor.from_mapping(
        {"SOURCE_URL": "https://example.org/a.tar.gz", "SOURCE_SUM": "abc"},
        source_id="main",
    )

    assert descriptor.checksum_algorithm == "sha256"
    assert descriptor.format == "tar.gz"
    assert descriptor.extract is True
    assert descriptor.strip_levels.mode is StripMode.DEFAULT_ONE
    assert descriptor.strip_levels.levels == 1
    assert descriptor.filename == "main.tar.gz"


def test_default_filename_follows_format():
    """Test default filename follows format."""
    descriptor = SourceDescriptor.from_mapping({"SOURCE_FORMAT": "tar.xz"})
    assert descriptor.filename == "app.tar.xz"


def test_quoted_values_and_blank_lines():
    """Test quoted values and blank lines."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "app.src"
        path.write_text('\nSOURCE_URL="https://example.org/x.tar.gz"\n\nSOURCE_SUM=\'abc\'\n')

        descriptor = SourceDescriptor.from_file(path)

        assert descriptor.url == "https://example.org/x.tar.gz"
        assert descriptor.checksum == "abc"


def test_unknown_keys_ignored():
    """Test unknown keys ignored."""
    descriptor = SourceDescriptor.from_mapping({"SOURCE_PLATFORM": "linux/amd64", "SOURCE_SUM": "abc"})
    assert descriptor.checksum == "abc"


def test_unrecognized_format_accepted_at_load_time():
    """Format is only checked when extracting."""
    descriptor = SourceDescriptor.from_mapping({"SOURCE_FORMAT": "rar"})
    assert descriptor.format == "rar"


@pytest.mark.parametrize(
    ("value", "levels"),
    [("true", 1), ("false", 0), ("0", 0), ("3", 3), ("TRUE", 1)],
)
def test_strip_levels_values(value, levels):
    """Test strip levels values."""
    descriptor = SourceDescriptor.from_mapping({"SOURCE_IN_SUBDIR": value})
    assert descriptor.strip_levels.levels == levels


def test_strip_levels_explicit_tag():
    """Test strip levels explicit tag."""
    assert StripLevels.parse("2") == StripLevels.explicit(2)
    assert StripLevels.parse(True) == StripLevels.default_one()
    assert StripLevels.parse(False) == StripLevels.disabled()
    assert not StripLevels.explicit(0).enabled


def test_invalid_strip_levels():
    """Test invalid strip levels."""
    with pytest.raises(DescriptorError, match="Invalid source descriptor"):
        SourceDescriptor.from_mapping({"SOURCE_IN_SUBDIR": "maybe"})


def test_invalid_extract_flag():
    """Test invalid extract flag."""
    with pytest.raises(DescriptorError):
        SourceDescriptor.from_mapping({"SOURCE_EXTRACT": "yes"})


def test_unsupported_algorithm():
    """Test unsupported algorithm."""
    with pytest.raises(DescriptorError, match="unsupported checksum algorithm"):
        SourceDescriptor.from_mapping({"SOURCE_SUM_PRG": "crc32sum"})


def test_missing_file():
    """Test missing file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(DescriptorError, match="not found"):
            SourceDescriptor.from_file(Path(tmpdir) / "missing.src")


def test_malformed_line():
    """Test malformed line."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "app.src"
        path.write_text("SOURCE_URL https://example.org\n")

        with pytest.raises(DescriptorError, match="expected KEY=VALUE"):
            SourceDescriptor.from_file(path)


def test_descriptor_is_frozen():
    """Test descriptor is frozen."""
    descriptor = SourceDescriptor.from_mapping({})
    with pytest.raises(ValidationError):
        descriptor.url = "https://example.org"  # type: ignore[misc]

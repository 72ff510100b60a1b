"""Tests for checksum verification."""

import hashlib
import tempfile
from pathlib import Path

import pytest
from app_sources import CorruptSourceError
from app_sources import copy_tree
from app_sources import file_digest
from app_sources import tree_digest
from app_sources import verify_checksum


def test_digest_matches_hashlib():
    """Test digest matches hashlib."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "a.bin"
        path.write_bytes(b"hello world")

        assert file_digest(path, "sha256") == hashlib.sha256(b"hello world").hexdigest()
        assert file_digest(path, "md5") == hashlib.md5(b"hello world").hexdigest()


def test_verify_accepts_correct_digest():
    """Test verify accepts correct digest."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "a.bin"
        path.write_bytes(b"payload" * 1000)

        verify_checksum(path, hashlib.sha256(b"payload" * 1000).hexdigest(), "sha256")


def test_verify_rejects_single_corrupted_byte():
    """Test verify rejects single corrupted byte."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "a.bin"
        data = bytearray(b"payload" * 1000)
        expected = hashlib.sha256(bytes(data)).hexdigest()
        data[1234] ^= 0xFF
        path.write_bytes(bytes(data))

        with pytest.raises(CorruptSourceError) as excinfo:
            verify_checksum(path, expected, "sha256")

        assert excinfo.value.context["expected"] == expected
        assert excinfo.value.context["actual"] != expected


def test_verify_is_case_sensitive():
    """Test verify is case sensitive."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "a.bin"
        path.write_bytes(b"x")

        with pytest.raises(CorruptSourceError):
            verify_checksum(path, hashlib.sha256(b"x").hexdigest().upper(), "sha256")


def test_tree_digest_survives_copy():
    """Test copying a tree (new mtimes) keeps its digest."""
    with tempfile.TemporaryDirectory() as tmpdir:
        base = Path(tmpdir)
        src = base / "src"
        (src / "conf").mkdir(parents=True)
        (src / "conf" / "app.ini").write_text("mode=prod\n")
        (src / "conf" / "link.ini").symlink_to("app.ini")

        copy_tree(src, base / "dst")

        assert tree_digest(base / "dst") == tree_digest(src)


def test_tree_digest_tracks_content_and_mode():
    """Test any content or permission change alters the digest."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        target = root / "app.ini"
        target.write_text("mode=prod\n")
        target.chmod(0o644)
        original = tree_digest(root)

        target.write_text("mode=dev\n")
        edited = tree_digest(root)
        target.chmod(0o600)

        assert len({original, edited, tree_digest(root)}) == 3

"""Tests for the extra files overlay."""

import os
import stat
import tempfile
from pathlib import Path

from app_sources import apply_overlay
from app_sources import copy_overlay


def _tree_state(root: Path) -> dict:
    state = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        if path.is_symlink():
            state[rel] = ("link", os.readlink(path))
        elif path.is_dir():
            state[rel] = ("dir", stat.S_IMODE(path.stat().st_mode))
        else:
            st = path.stat()
            state[rel] = ("file", path.read_bytes(), stat.S_IMODE(st.st_mode), st.st_mtime_ns)
    return state


def _overlay(base: Path) -> Path:
    extra = base / "extra_files"
    overlay = extra / "app"
    (overlay / "conf").mkdir(parents=True)
    (overlay / "conf" / "settings.ini").write_text("[main]\nmode=prod\n")
    script = overlay / "start.sh"
    script.write_text("#!/bin/sh\n")
    script.chmod(0o750)
    os.symlink("conf/settings.ini", overlay / "settings.ini")
    return extra


def test_overlay_overwrites_and_preserves_attributes():
    """Test overlay overwrites and preserves attributes."""
    with tempfile.TemporaryDirectory() as tmpdir:
        base = Path(tmpdir)
        extra = _overlay(base)
        dest = base / "dest"
        (dest / "conf").mkdir(parents=True)
        (dest / "conf" / "settings.ini").write_text("upstream\n")
        (dest / "README").write_text("upstream readme\n")

        applied = apply_overlay(extra, "app", dest)

        assert applied == extra / "app"
        assert (dest / "conf" / "settings.ini").read_text() == "[main]\nmode=prod\n"
        assert (dest / "README").read_text() == "upstream readme\n"
        assert stat.S_IMODE((dest / "start.sh").stat().st_mode) == 0o750
        assert (dest / "settings.ini").is_symlink()
        assert os.readlink(dest / "settings.ini") == "conf/settings.ini"


def test_overlay_idempotent():
    """Test overlay idempotent."""
    with tempfile.TemporaryDirectory() as tmpdir:
        base = Path(tmpdir)
        extra = _overlay(base)
        once = base / "once"
        twice = base / "twice"
        for dest in (once, twice):
            dest.mkdir()
            (dest / "upstream.txt").write_text("u\n")

        apply_overlay(extra, "app", once)
        apply_overlay(extra, "app", twice)
        apply_overlay(extra, "app", twice)

        once_state = _tree_state(once)
        twice_state = _tree_state(twice)
        # upstream.txt mtimes were written independently
        once_state.pop("upstream.txt")
        twice_state.pop("upstream.txt")
        assert once_state == twice_state


def test_missing_overlay_is_noop():
    """Test missing overlay is noop."""
    with tempfile.TemporaryDirectory() as tmpdir:
        base = Path(tmpdir)
        dest = base / "dest"
        dest.mkdir()

        assert apply_overlay(base / "extra_files", "app", dest) is None
        assert apply_overlay(None, "app", dest) is None
        assert list(dest.iterdir()) == []


def test_copy_overlay_from_discovered_tree():
    """Test copy_overlay merges a given tree without the source id lookup."""
    with tempfile.TemporaryDirectory() as tmpdir:
        base = Path(tmpdir)
        extra = _overlay(base)
        dest = base / "dest"
        dest.mkdir()

        copy_overlay(extra / "app", dest)

        assert _tree_state(dest) == _tree_state(extra / "app")

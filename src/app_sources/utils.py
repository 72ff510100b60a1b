"""Filesystem helpers shared by extraction and overlays."""

import os
import shutil
from pathlib import Path


def strip_path(name: str, levels: int) -> str | None:
    """Remove ``levels`` leading components from an archive member name.

    Returns None when nothing is left (the member is one of the stripped
    directories, or a file sitting above the strip depth).

    Examples:
        >>> strip_path("pkg/src/main.c", 1)
        'src/main.c'
        >>> strip_path("./pkg/", 1) is None
        True
    """
    parts = [p for p in name.split("/") if p and p != "."]
    if len(parts) <= levels:
        return None
    return "/".join(parts[levels:])


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def copy_tree(src: Path, dst: Path) -> None:
    """
    Copy the contents of src into dst with archive semantics.

    Symlinks are recreated (not followed), permissions and timestamps are
    preserved, and anything already at a colliding path in dst is replaced.
    Directories are merged. Running it twice gives the same tree as running it once.

    Args:
        src: Directory whose contents are copied
        dst: Destination directory (created if missing)
    """
    dst.mkdir(parents=True, exist_ok=True)

    for entry in sorted(src.iterdir()):
        target = dst / entry.name

        if entry.is_symlink():
            if target.exists() or target.is_symlink():
                _remove(target)
            os.symlink(os.readlink(entry), target)
        elif entry.is_dir():
            if target.is_symlink() or (target.exists() and not target.is_dir()):
                _remove(target)
            copy_tree(entry, target)
            shutil.copystat(entry, target)
        else:
            if target.exists() or target.is_symlink():
                _remove(target)
            shutil.copy2(entry, target)

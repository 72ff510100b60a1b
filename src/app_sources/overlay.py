"""Extra files overlay on top of an extracted source tree."""

import logging
from pathlib import Path

from .discovery import find_overlay
from .utils import copy_tree

logger = logging.getLogger(__name__)


def apply_overlay(extra_files_dir: Path | None, source_id: str, dest_dir: Path) -> Path | None:
    """
    Copy ``<extra_files_dir>/<source_id>/`` into dest_dir.

    Attributes are preserved and colliding paths are overwritten. No-op when
    the overlay directory does not exist.

    Returns:
        The overlay directory that was applied, or None
    """
    overlay = find_overlay(extra_files_dir, source_id)
    if overlay is None:
        logger.debug(f"No extra files for '{source_id}'")
        return None

    copy_overlay(overlay, dest_dir)
    return overlay


def copy_overlay(overlay: Path, dest_dir: Path) -> None:
    """Copy an already discovered overlay tree into dest_dir."""
    logger.info(f"Copying extra files from {overlay} into {dest_dir}")
    copy_tree(overlay, dest_dir)

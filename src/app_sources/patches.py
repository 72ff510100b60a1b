"""Patch application against an extracted source tree."""

import logging
import shutil
import subprocess
from pathlib import Path

from .discovery import list_patches
from .exceptions import PatchApplicationError

logger = logging.getLogger(__name__)

# Patches are rooted one level above the tree (a/..., b/...)
PATCH_STRIP = 1


def apply_patch(patch: Path, dest_dir: Path) -> None:
    """Apply a single unified diff inside dest_dir.

    Raises:
        PatchApplicationError: If the patch tool is missing or rejects the patch
    """
    tool = shutil.which("patch")
    if tool is None:
        raise PatchApplicationError(
            f"Cannot apply {patch.name}: 'patch' executable not found",
            context={"patch": str(patch)},
        )

    result = subprocess.run(
        [tool, "--batch", "--forward", f"-p{PATCH_STRIP}", "--input", str(patch.resolve())],
        cwd=dest_dir,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        output = (result.stdout + result.stderr).strip()
        raise PatchApplicationError(
            f"Patch {patch.name} failed to apply in {dest_dir}: {output}",
            context={"patch": str(patch), "dest_dir": str(dest_dir), "returncode": result.returncode},
        )
    logger.debug(f"Applied {patch.name}")


def apply_patches(patch_dir: Path | None, source_id: str, dest_dir: Path) -> list[Path]:
    """
    Apply every ``<source_id>-*.patch`` in filename order.

    No matching patches is a no-op. The first failure stops the sequence;
    patches applied before it stay applied.

    Returns:
        Patches applied, in order

    Raises:
        PatchApplicationError: If any patch fails
    """
    patches = list_patches(patch_dir, source_id)
    if not patches:
        logger.debug(f"No patches for '{source_id}' in {patch_dir}")
        return []
    return apply_patch_series(patches, dest_dir)


def apply_patch_series(patches: list[Path], dest_dir: Path) -> list[Path]:
    """Apply already discovered patches in the order given, stopping at the first failure."""
    if patches:
        logger.info(f"Applying {len(patches)} patch(es) in {dest_dir}")
    for patch in patches:
        apply_patch(patch, dest_dir)
    return patches

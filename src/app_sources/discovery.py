"""Source asset discovery - Patches and overlay trees found by naming convention.

Convention:
- <patches_dir>/<source_id>-*.patch → patches, applied in filename order
- <extra_files_dir>/<source_id>/ → overlay tree copied on top of the sources
"""

from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class SourceAssets(BaseModel):
    """Patches and overlay discovered for one source (immutable)."""

    model_config = ConfigDict(frozen=True)

    patches: list[Path] = Field(default_factory=list)
    overlay_dir: Path | None = None

    def has_assets(self) -> bool:
        return bool(self.patches or self.overlay_dir)


def list_patches(patches_dir: Path | None, source_id: str) -> list[Path]:
    """
    List patch files for a source in application order.

    Order is the lexicographic order of the filenames, never the directory
    listing order, so patches must be named to sort correctly
    (``app-001-fix.patch``, ``app-002-feature.patch``).

    Returns:
        Sorted list of patch paths (empty if the directory is missing)
    """
    if patches_dir is None or not patches_dir.is_dir():
        return []
    return sorted(
        (p for p in patches_dir.glob(f"{source_id}-*.patch") if p.is_file()),
        key=lambda p: p.name,
    )


def find_overlay(extra_files_dir: Path | None, source_id: str) -> Path | None:
    """Return the overlay tree for a source, or None if there is none."""
    if extra_files_dir is None:
        return None
    candidate = extra_files_dir / source_id
    return candidate if candidate.is_dir() else None


def discover_source_assets(
    patches_dir: Path | None,
    extra_files_dir: Path | None,
    source_id: str,
) -> SourceAssets:
    """
    Discover patches and overlay for a source.

    Example:
        >>> assets = discover_source_assets(Path("sources/patches"), Path("sources/extra_files"), "app")
        >>> [p.name for p in assets.patches]
        ['app-001-fix-paths.patch', 'app-002-disable-telemetry.patch']
    """
    return SourceAssets(
        patches=list_patches(patches_dir, source_id),
        overlay_dir=find_overlay(extra_files_dir, source_id),
    )

"""Archive extraction - Format dispatch with leading-directory stripping.

Dispatch by (extract, format):
- extract=False (or format "none") → move the raw artifact into the destination
- zip → unzip; when stripping, stage in a temporary directory and copy the
  contents one level below the top-level entries into the destination
- tar.gz / tar.bz2 / tar.xz → extract directly, stripping N leading components

Zip keeps the two-phase stage-then-copy approach. Its result must match what a
tar strip-by-one produces for the same layout.
"""

import logging
import lzma
import os
import shutil
import stat
import tarfile
import tempfile
import time
import zipfile
import zlib
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from .descriptor import StripLevels
from .exceptions import ExtractionError
from .exceptions import UnrecognizedFormatError
from .utils import copy_tree
from .utils import strip_path

logger = logging.getLogger(__name__)

_EXTRACTION_ERRORS = (
    tarfile.TarError,
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    lzma.LZMAError,
    zlib.error,
    EOFError,
    OSError,
)


class ArchiveFormat(str, Enum):
    """Recognized archive formats."""

    TAR_GZ = "tar.gz"
    TAR_BZ2 = "tar.bz2"
    TAR_XZ = "tar.xz"
    ZIP = "zip"
    NONE = "none"

    @classmethod
    def parse(cls, value: "str | ArchiveFormat") -> "ArchiveFormat":
        """Resolve a descriptor format string (case-insensitive).

        Raises:
            UnrecognizedFormatError: If value is not a known format
        """
        if isinstance(value, ArchiveFormat):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            known = ", ".join(f.value for f in cls)
            raise UnrecognizedFormatError(
                f"Unrecognized archive format '{value}' (expected one of: {known})",
                context={"format": str(value)},
            ) from None


_TAR_MODES = {
    ArchiveFormat.TAR_GZ: "r:gz",
    ArchiveFormat.TAR_BZ2: "r:bz2",
    ArchiveFormat.TAR_XZ: "r:xz",
}


def _move_raw(archive: Path, dest_dir: Path, _strip: StripLevels) -> None:
    target = dest_dir / archive.name
    logger.debug(f"Moving raw artifact {archive.name} into {dest_dir}")
    shutil.move(str(archive), str(target))


def _keep_mode(member: tarfile.TarInfo, dest_path: str) -> tarfile.TarInfo:
    """Path checks of the 'tar' filter, but with the archive's mode bits kept."""
    filtered = tarfile.tar_filter(member, dest_path)
    return filtered.replace(mode=stat.S_IMODE(member.mode), deep=False)


def _extract_tar(archive: Path, dest_dir: Path, strip: StripLevels, mode: str) -> None:
    levels = strip.levels
    with tarfile.open(archive, mode) as tar:
        members = []
        for member in tar.getmembers():
            name = strip_path(member.name, levels)
            if name is None:
                continue
            if member.islnk() and levels:
                linkname = strip_path(member.linkname, levels)
                if linkname is None:
                    logger.debug(f"Skipping hard link {member.name}: target stripped away")
                    continue
                member.linkname = linkname
            member.name = name
            members.append(member)

        logger.debug(f"Extracting {len(members)} members from {archive.name} (strip {levels})")
        tar.extractall(dest_dir, members=members, filter=_keep_mode)


def _member_path(root: Path, name: str) -> Path:
    relative = strip_path(name, 0)
    if relative is None or ".." in relative.split("/"):
        raise ExtractionError(f"Refusing to extract unsafe zip member '{name}'", context={"member": name})
    return root / relative


def _unzip(archive: Path, target: Path) -> None:
    """Unzip archive into target, restoring unix modes, symlinks and mtimes."""
    target.mkdir(parents=True, exist_ok=True)
    directories: list[tuple[Path, int, float]] = []

    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            mode = (info.external_attr >> 16) & 0xFFFF
            mtime = time.mktime(info.date_time + (0, 0, -1))
            path = _member_path(target, info.filename)

            if stat.S_ISLNK(mode):
                path.parent.mkdir(parents=True, exist_ok=True)
                if path.exists() or path.is_symlink():
                    path.unlink()
                os.symlink(zf.read(info).decode("utf-8"), path)
                continue

            zf.extract(info, target)
            if info.is_dir():
                directories.append((path, mode, mtime))
                continue
            if mode:
                os.chmod(path, stat.S_IMODE(mode))
            os.utime(path, (mtime, mtime))

    # Deepest first so restoring a parent's mode never blocks a child
    for path, mode, mtime in sorted(directories, key=lambda d: len(d[0].parts), reverse=True):
        if mode:
            os.chmod(path, stat.S_IMODE(mode))
        os.utime(path, (mtime, mtime))


def _extract_zip(archive: Path, dest_dir: Path, strip: StripLevels) -> None:
    if not strip.enabled:
        _unzip(archive, dest_dir)
        return

    # TODO: decide whether zip should honour strip depths above one like tar does
    if strip.levels > 1:
        logger.warning(f"Zip extraction strips a single directory level; ignoring requested depth {strip.levels}")

    with tempfile.TemporaryDirectory(prefix="app-sources-zip-") as staging:
        staging_dir = Path(staging)
        _unzip(archive, staging_dir)
        for top in sorted(staging_dir.iterdir()):
            if top.is_dir() and not top.is_symlink():
                copy_tree(top, dest_dir)
            else:
                logger.debug(f"Dropping top-level zip entry {top.name}: not a directory")


def _strategy(fmt: ArchiveFormat) -> Callable[[Path, Path, StripLevels], None]:
    if fmt is ArchiveFormat.NONE:
        return _move_raw
    if fmt is ArchiveFormat.ZIP:
        return _extract_zip
    if fmt in _TAR_MODES:
        mode = _TAR_MODES[fmt]
        return lambda archive, dest_dir, strip: _extract_tar(archive, dest_dir, strip, mode)
    raise UnrecognizedFormatError(f"No extraction strategy for '{fmt.value}'", context={"format": fmt.value})


def extract_artifact(
    archive: Path,
    dest_dir: Path,
    format: "str | ArchiveFormat",
    extract: bool = True,
    strip_levels: StripLevels | None = None,
) -> None:
    """
    Unpack archive into dest_dir.

    dest_dir (and its parents) is created before any branch runs. A failure
    part-way leaves dest_dir partially written; it is not cleaned up.

    Args:
        archive: Local archive (verified)
        dest_dir: Destination directory
        format: Archive format string or ArchiveFormat
        extract: False moves the raw artifact into dest_dir unchanged
        strip_levels: Leading directory levels to remove (default: one)

    Raises:
        UnrecognizedFormatError: If format is unknown (only checked when extracting)
        ExtractionError: If the archive cannot be decompressed or unpacked
    """
    strip = strip_levels or StripLevels.default_one()
    dest_dir.mkdir(parents=True, exist_ok=True)

    if not extract:
        _move_raw(archive, dest_dir, strip)
        return

    fmt = ArchiveFormat.parse(format)
    strategy = _strategy(fmt)
    logger.info(f"Extracting {archive.name} ({fmt.value}) into {dest_dir}")
    try:
        strategy(archive, dest_dir, strip)
    except ExtractionError:
        raise
    except _EXTRACTION_ERRORS as e:
        raise ExtractionError(
            f"Failed to extract {archive.name} as {fmt.value}: {e}",
            context={"archive": str(archive), "format": fmt.value},
        ) from e

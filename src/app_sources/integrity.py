"""Archive integrity verification."""

import hashlib
import logging
import os
import stat
from pathlib import Path

from .exceptions import CorruptSourceError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def file_digest(path: Path, algorithm: str) -> str:
    """Hex digest of a file's bytes, as printed by ``<algorithm>sum``."""
    digest = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def tree_digest(root: Path, algorithm: str = "sha256") -> str:
    """Digest of a directory tree: relative paths, modes, file contents and link targets.

    Timestamps are ignored, so copying a tree leaves its digest unchanged.
    """
    digest = hashlib.new(algorithm)
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root).as_posix()
        if path.is_symlink():
            record = f"L {relative} {os.readlink(path)}"
        elif path.is_dir():
            record = f"D {relative} {stat.S_IMODE(path.stat().st_mode):o}"
        else:
            mode = stat.S_IMODE(path.stat().st_mode)
            record = f"F {relative} {mode:o} {file_digest(path, algorithm)}"
        digest.update(record.encode("utf-8") + b"\0")
    return digest.hexdigest()


def verify_checksum(path: Path, checksum: str, algorithm: str = "sha256") -> None:
    """
    Compare an archive's digest with the expected checksum.

    The comparison is exact: the expected value must match the lower-case hex
    digest the standard checksum tool prints.

    Args:
        path: Local archive
        checksum: Expected hex digest
        algorithm: hashlib algorithm name

    Raises:
        CorruptSourceError: If the digests differ
    """
    actual = file_digest(path, algorithm)
    if actual != checksum:
        raise CorruptSourceError(
            f"Corrupt source for {path.name}: expected {algorithm} {checksum}, computed {actual}",
            context={"path": str(path), "algorithm": algorithm, "expected": checksum, "actual": actual},
        )
    logger.debug(f"Checksum OK for {path.name} ({algorithm})")

"""Source lock - What each destination was materialized from.

An entry pins the inputs of a successful run: the artifact (url, checksum,
algorithm, filename), a digest per applied patch and a digest of the overlay
tree. When a later run for the same destination has exactly the same inputs the
pipeline can skip it. Any change (new checksum, edited or added patch, changed
extra file, different destination) makes the entry stale.

Lock path is app policy and always injected.
"""

import json
import logging
import os
from datetime import UTC
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .descriptor import SourceDescriptor
from .discovery import SourceAssets
from .integrity import file_digest
from .integrity import tree_digest

logger = logging.getLogger(__name__)

LOCK_FORMAT = 1


class SourceInputs(BaseModel):
    """Fingerprint of everything a run copies into the destination."""

    model_config = ConfigDict(frozen=True)

    url: str | None = None
    checksum: str | None = None
    algorithm: str
    filename: str
    patches: dict[str, str] = Field(default_factory=dict)
    overlay: str | None = None

    @classmethod
    def collect(cls, descriptor: SourceDescriptor, assets: SourceAssets) -> "SourceInputs":
        return cls(
            url=descriptor.url,
            checksum=descriptor.checksum,
            algorithm=descriptor.checksum_algorithm,
            filename=descriptor.filename,
            patches={p.name: file_digest(p, "sha256") for p in assets.patches},
            overlay=tree_digest(assets.overlay_dir) if assets.overlay_dir else None,
        )


class SourceLockEntry(BaseModel):
    """One materialized source."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    dest_dir: str
    inputs: SourceInputs
    materialized_at: str


class SourceLock:
    """
    Lock file keyed by source id (with injected lock path).

    Lock format (JSON):
    {
      "format": 1,
      "sources": {
        "app": {
          "source_id": "app",
          "dest_dir": "/var/www/wiki",
          "inputs": {
            "url": "https://example.org/wiki-2.3.tar.gz",
            "checksum": "9f86d081...",
            "algorithm": "sha256",
            "filename": "app.tar.gz",
            "patches": {"app-001-fix-paths.patch": "5e88..."},
            "overlay": "a3c1..."
          },
          "materialized_at": "2026-10-18T12:00:00+00:00"
        }
      }
    }

    Written atomically (temp file + rename) so an interrupted write never leaves
    a truncated lock behind.
    """

    def __init__(self, lock_path: Path):
        self.lock_path = lock_path
        self._entries = self._read()

    def _read(self) -> dict[str, SourceLockEntry]:
        if not self.lock_path.is_file():
            return {}
        try:
            raw = json.loads(self.lock_path.read_text())
            if raw.get("format") != LOCK_FORMAT:
                logger.warning(f"Ignoring lock file {self.lock_path} with unknown format {raw.get('format')!r}")
                return {}
            return {
                source_id: SourceLockEntry.model_validate(entry) for source_id, entry in raw["sources"].items()
            }
        except (OSError, ValueError, KeyError, AttributeError) as e:
            # A stale or broken ledger only means the next run is not skipped
            logger.warning(f"Ignoring unreadable lock file {self.lock_path}: {e}")
            return {}

    def _write(self) -> None:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "format": LOCK_FORMAT,
            "sources": {source_id: entry.model_dump() for source_id, entry in sorted(self._entries.items())},
        }
        tmp = self.lock_path.with_name(f"{self.lock_path.name}.tmp")
        tmp.write_text(json.dumps(payload, indent=2) + "\n")
        os.replace(tmp, self.lock_path)

    def record(self, descriptor: SourceDescriptor, dest_dir: Path, assets: SourceAssets) -> SourceLockEntry:
        """Pin the inputs of a successful run for descriptor.source_id."""
        entry = SourceLockEntry(
            source_id=descriptor.source_id,
            dest_dir=str(dest_dir.resolve()),
            inputs=SourceInputs.collect(descriptor, assets),
            materialized_at=datetime.now(UTC).isoformat(),
        )
        self._entries[descriptor.source_id] = entry
        self._write()
        logger.debug(f"Recorded '{descriptor.source_id}' -> {entry.dest_dir}")
        return entry

    def forget(self, source_id: str) -> None:
        if self._entries.pop(source_id, None) is not None:
            self._write()

    def get(self, source_id: str) -> SourceLockEntry | None:
        return self._entries.get(source_id)

    def entries(self) -> list[SourceLockEntry]:
        return [self._entries[source_id] for source_id in sorted(self._entries)]

    def is_current(self, descriptor: SourceDescriptor, dest_dir: Path, assets: SourceAssets) -> bool:
        """
        True when dest_dir was already materialized from exactly these inputs.

        A descriptor without checksum never counts as current: nothing pins the
        artifact. A destination that no longer exists is not current either.
        """
        entry = self._entries.get(descriptor.source_id)
        if entry is None or not descriptor.checksum or not dest_dir.is_dir():
            return False
        if entry.dest_dir != str(dest_dir.resolve()):
            return False
        return entry.inputs == SourceInputs.collect(descriptor, assets)

"""Source pipeline - Fetch, verify, extract, patch and overlay one source.

Steps run in strict sequence and each one gates the next:

    fetch → verify → extract → patch → overlay

Any failure ends the run immediately and propagates to the caller. Nothing is
rolled back: once extraction has started the destination may be half populated,
and callers treat it as unusable (discard or retry it as a whole). A caller
supplied cleanup hook runs after every run, success or failure.

With a lock, a run whose inputs (artifact, patches, extra files) match the entry
recorded for the same destination is skipped; pass force=True to rebuild anyway.
"""

import logging
import tempfile
from pathlib import Path

import httpx

from .config import PipelineConfig
from .descriptor import DEFAULT_SOURCE_ID
from .descriptor import SourceDescriptor
from .discovery import discover_source_assets
from .exceptions import DescriptorError
from .exceptions import SourceError
from .extractor import extract_artifact
from .fetcher import cached_artifact
from .fetcher import fetch_artifact
from .integrity import verify_checksum
from .lock import SourceLock
from .overlay import copy_overlay
from .patches import apply_patch_series
from .protocols import CleanupHook
from .resolver import DescriptorResolver

logger = logging.getLogger(__name__)


class SourcePipeline:
    """
    Materialize source descriptors into destination directories.

    One run handles one descriptor end to end, synchronously. Concurrent runs on
    the same destination are not supported; callers serialise them.
    """

    def __init__(
        self,
        config: PipelineConfig,
        cleanup: CleanupHook | None = None,
        lock: SourceLock | None = None,
        client: httpx.Client | None = None,
    ):
        """Initialize the pipeline with app-provided configuration.

        Args:
            config: Paths and download limits
            cleanup: Optional hook run after every materialize call
            lock: Optional lock file; runs with unchanged inputs are skipped
            client: Optional httpx client used for downloads

        Example:
            >>> config = PipelineConfig.for_app(Path("/srv/apps/wiki"), instance_id="wiki")
            >>> pipeline = SourcePipeline(config)
            >>> pipeline.setup_source(Path("/var/www/wiki"))
        """
        self.config = config
        self.cleanup = cleanup
        self.lock = lock
        self.client = client
        self.resolver = DescriptorResolver(search_paths=list(config.descriptor_dirs))

    def load_descriptor(self, source_id: str = DEFAULT_SOURCE_ID) -> SourceDescriptor:
        """Resolve and load the descriptor for source_id.

        Raises:
            DescriptorError: If no descriptor exists or it is invalid
        """
        path = self.resolver.resolve(source_id)
        if path is None:
            searched = ", ".join(str(p) for p in self.config.descriptor_dirs) or "<none>"
            raise DescriptorError(
                f"No descriptor '{source_id}.src' found (searched: {searched})",
                context={"source_id": source_id},
            )
        return SourceDescriptor.from_file(path, source_id=source_id)

    def setup_source(self, dest_dir: Path, source_id: str = DEFAULT_SOURCE_ID, force: bool = False) -> Path:
        """Load the descriptor for source_id and materialize it into dest_dir."""
        return self.materialize(self.load_descriptor(source_id), dest_dir, force=force)

    def materialize(self, descriptor: SourceDescriptor, dest_dir: Path, force: bool = False) -> Path:
        """
        Run the full pipeline for one descriptor.

        Process:
        1. Fetch the artifact (cache copy or download) into a private work directory
        2. Verify its checksum
        3. Extract into dest_dir
        4. Apply <source_id>-*.patch files in filename order
        5. Copy the extra files overlay
        6. Record the run in the lock file (if provided)

        When the lock shows dest_dir was already built from the same inputs the
        steps are skipped (unless force). The cleanup hook runs either way.

        Args:
            descriptor: Source descriptor
            dest_dir: Destination directory (created if missing)
            force: Rebuild even if the lock says dest_dir is current

        Returns:
            dest_dir

        Raises:
            SourceError: Subclass naming the failing step; unexpected errors are
                wrapped with the original message preserved
        """
        error: SourceError | None = None
        try:
            self._run(descriptor, dest_dir, force)
            return dest_dir

        except SourceError as e:
            error = e
            raise
        except Exception as e:
            error = SourceError(
                f"Failed to materialize source '{descriptor.source_id}': {e}",
                context={"source_id": descriptor.source_id, "dest_dir": str(dest_dir)},
            )
            raise error from e
        finally:
            if self.cleanup is not None:
                self.cleanup(dest_dir, error)

    def _run(self, descriptor: SourceDescriptor, dest_dir: Path, force: bool) -> None:
        source_id = descriptor.source_id
        cache_dir = self.config.cache_dir
        assets = discover_source_assets(self.config.patches_dir, self.config.extra_files_dir, source_id)

        if self.lock is not None and not force and self.lock.is_current(descriptor, dest_dir, assets):
            logger.info(f"Source '{source_id}' in {dest_dir} is up to date; skipping")
            return

        if not descriptor.checksum:
            if cached_artifact(descriptor, cache_dir) is None:
                raise DescriptorError(
                    f"SOURCE_SUM is required for '{source_id}' when no cached artifact exists",
                    context={"source_id": source_id, "cache_dir": str(cache_dir)},
                )
            logger.warning(f"No checksum for '{source_id}'; trusting cached artifact")

        with tempfile.TemporaryDirectory(prefix=f"app-sources-{source_id}-") as work:
            archive = fetch_artifact(
                descriptor,
                cache_dir,
                Path(work),
                client=self.client,
                attempts=self.config.download_attempts,
                timeout=self.config.download_timeout,
            )

            if descriptor.checksum:
                verify_checksum(archive, descriptor.checksum, descriptor.checksum_algorithm)

            extract_artifact(
                archive,
                dest_dir,
                descriptor.format,
                extract=descriptor.extract,
                strip_levels=descriptor.strip_levels,
            )

        apply_patch_series(assets.patches, dest_dir)
        if assets.overlay_dir is not None:
            copy_overlay(assets.overlay_dir, dest_dir)

        if self.lock is not None:
            self.lock.record(descriptor, dest_dir, assets)
        logger.info(f"Source '{source_id}' ready in {dest_dir}")

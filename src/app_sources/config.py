"""Pipeline configuration - Explicit paths and limits injected by the app.

The library never reads environment variables. Apps decide where the artifact
cache lives, which instance is being installed and where patches and extra files
are kept, then hand a PipelineConfig to SourcePipeline.
"""

from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

DEFAULT_CACHE_ROOT = Path("/var/cache/app-sources/download")
DEFAULT_DOWNLOAD_ATTEMPTS = 3
DEFAULT_DOWNLOAD_TIMEOUT = 900.0


class PipelineConfig(BaseModel):
    """Configuration for one app instance's source pipeline."""

    model_config = ConfigDict(frozen=True)

    cache_root: Path = DEFAULT_CACHE_ROOT
    instance_id: str
    patches_dir: Path | None = None
    extra_files_dir: Path | None = None
    # Lowest to highest precedence
    descriptor_dirs: list[Path] = Field(default_factory=list)
    download_attempts: int = Field(default=DEFAULT_DOWNLOAD_ATTEMPTS, gt=0)
    download_timeout: float = Field(default=DEFAULT_DOWNLOAD_TIMEOUT, gt=0)

    @property
    def cache_dir(self) -> Path:
        """Read-only artifact cache for this instance."""
        return self.cache_root / self.instance_id

    @classmethod
    def for_app(
        cls,
        app_dir: Path,
        instance_id: str,
        cache_root: Path = DEFAULT_CACHE_ROOT,
    ) -> "PipelineConfig":
        """
        Build a config for the conventional app layout.

        Layout:
        - conf/<source_id>.src → descriptors
        - sources/patches/<source_id>-*.patch → patches
        - sources/extra_files/<source_id>/ → overlay trees

        Example:
            >>> config = PipelineConfig.for_app(Path("/srv/apps/wiki"), instance_id="wiki__2")
            >>> config.cache_dir
            PosixPath('/var/cache/app-sources/download/wiki__2')
        """
        return cls(
            cache_root=cache_root,
            instance_id=instance_id,
            patches_dir=app_dir / "sources" / "patches",
            extra_files_dir=app_dir / "sources" / "extra_files",
            descriptor_dirs=[app_dir / "conf"],
        )

"""Descriptor resolver - Resolve source ids to descriptor files.

Search paths are app policy: the resolver only knows that a source id maps to
``<search_path>/<source_id>.src`` and that later search paths win.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DESCRIPTOR_SUFFIX = ".src"


class DescriptorResolver:
    """
    Resolve source ids to descriptor files (with injected search paths).

    Example:
        >>> resolver = DescriptorResolver(search_paths=[
        ...     Path("/usr/share/app-sources/defaults"),  # lowest
        ...     Path("/srv/apps/wiki/conf"),  # highest
        ... ])
        >>> resolver.resolve("app")
        PosixPath('/srv/apps/wiki/conf/app.src')
    """

    def __init__(self, search_paths: list[Path]):
        """Initialize resolver with app-provided search paths.

        Args:
            search_paths: Directories in precedence order (lowest to highest)
        """
        self.search_paths = search_paths

    def resolve(self, source_id: str) -> Path | None:
        """
        Resolve a source id to its descriptor file.

        Returns:
            Path to ``<source_id>.src`` in the highest-precedence directory holding
            one, None if no search path has it
        """
        for search_path in reversed(self.search_paths):
            candidate = search_path / f"{source_id}{DESCRIPTOR_SUFFIX}"
            if candidate.is_file():
                logger.debug(f"Resolved '{source_id}' to {candidate}")
                return candidate.resolve()
        return None

    def list_descriptors(self) -> list[tuple[str, Path]]:
        """
        List every known descriptor as (source_id, path).

        Higher precedence entries override lower ones with the same id.
        """
        descriptors: dict[str, Path] = {}
        for search_path in self.search_paths:
            if not search_path.is_dir():
                continue
            for candidate in sorted(search_path.glob(f"*{DESCRIPTOR_SUFFIX}")):
                if candidate.is_file():
                    descriptors[candidate.stem] = candidate.resolve()
        return sorted(descriptors.items())

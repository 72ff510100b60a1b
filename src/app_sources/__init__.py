"""app-sources - Fetch, verify and unpack upstream source artifacts.

Public API exports.

This is library mechanism: apps inject policy (cache root, instance id, patch and
extra files locations, lock path).
"""

from .config import PipelineConfig
from .descriptor import SourceDescriptor
from .descriptor import StripLevels
from .descriptor import StripMode
from .discovery import SourceAssets
from .discovery import discover_source_assets
from .discovery import list_patches
from .exceptions import CorruptSourceError
from .exceptions import DescriptorError
from .exceptions import ExtractionError
from .exceptions import FetchError
from .exceptions import PatchApplicationError
from .exceptions import SourceError
from .exceptions import UnrecognizedFormatError
from .extractor import ArchiveFormat
from .extractor import extract_artifact
from .fetcher import fetch_artifact
from .integrity import file_digest
from .integrity import tree_digest
from .integrity import verify_checksum
from .lock import SourceLock
from .lock import SourceInputs
from .lock import SourceLockEntry
from .overlay import apply_overlay
from .overlay import copy_overlay
from .patches import apply_patch_series
from .patches import apply_patches
from .pipeline import SourcePipeline
from .protocols import CleanupHook
from .resolver import DescriptorResolver
from .utils import copy_tree

__all__ = [
    # Descriptor
    "SourceDescriptor",
    "StripLevels",
    "StripMode",
    # Configuration
    "PipelineConfig",
    # Pipeline
    "SourcePipeline",
    "CleanupHook",
    # Steps
    "fetch_artifact",
    "file_digest",
    "tree_digest",
    "verify_checksum",
    "ArchiveFormat",
    "extract_artifact",
    "apply_patches",
    "apply_patch_series",
    "apply_overlay",
    "copy_overlay",
    # Discovery
    "DescriptorResolver",
    "SourceAssets",
    "discover_source_assets",
    "list_patches",
    # Lock file
    "SourceLock",
    "SourceLockEntry",
    "SourceInputs",
    # Exceptions
    "SourceError",
    "DescriptorError",
    "FetchError",
    "CorruptSourceError",
    "UnrecognizedFormatError",
    "ExtractionError",
    "PatchApplicationError",
    # Utilities
    "copy_tree",
]

__version__ = "0.1.0"

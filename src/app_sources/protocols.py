"""Protocols for caller-supplied hooks."""

from pathlib import Path
from typing import Protocol

from .exceptions import SourceError


class CleanupHook(Protocol):
    """Cleanup hook run after every pipeline run, success or failure.

    The pipeline never removes a partially written destination itself. Apps that
    want it gone (or kept for debugging) decide here.

    Example implementations:
    - Remove dest_dir when error is not None
    - Release an app-level lock serialising runs on the same destination
    """

    def __call__(self, dest_dir: Path, error: SourceError | None) -> None:
        """Run cleanup.

        Args:
            dest_dir: Destination directory of the run
            error: The error that ended the run, or None on success
        """
        ...

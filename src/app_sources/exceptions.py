"""Source acquisition exceptions.

Every error is terminal for the current pipeline run. Messages are meant to be
shown to an operator as-is.
"""


class SourceError(Exception):
    """Base exception for source acquisition."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (paths, digests, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class DescriptorError(SourceError):
    """Source descriptor missing, unreadable or invalid."""


class FetchError(SourceError):
    """Artifact could not be obtained from cache or remote URL."""


class CorruptSourceError(SourceError):
    """Artifact checksum does not match the expected value."""


class UnrecognizedFormatError(SourceError):
    """Archive format is not one of the supported formats."""


class ExtractionError(SourceError):
    """Archive could not be decompressed or unpacked."""


class PatchApplicationError(SourceError):
    """A patch was rejected while being applied."""

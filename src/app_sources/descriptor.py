"""Source descriptor schema - Parse KEY=VALUE descriptor files.

A descriptor tells the pipeline where an upstream artifact lives, how to verify
it and how to unpack it:

    SOURCE_URL=https://example.org/pkg-1.0.tar.gz
    SOURCE_SUM=9f86d081884c7d65...
    SOURCE_SUM_PRG=sha256sum
    SOURCE_FORMAT=tar.gz
    SOURCE_IN_SUBDIR=true
    SOURCE_FILENAME=pkg.tar.gz
    SOURCE_EXTRACT=true

Only parsing and normalisation happen here. The archive format is kept as a
lower-cased string and checked when extraction starts.
"""

import hashlib
import logging
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator
from pydantic import model_validator

from .exceptions import DescriptorError

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_ID = "app"
DEFAULT_FORMAT = "tar.gz"
DEFAULT_ALGORITHM = "sha256"

# Descriptor key -> SourceDescriptor field
_KEYS = {
    "SOURCE_URL": "url",
    "SOURCE_SUM": "checksum",
    "SOURCE_SUM_PRG": "checksum_algorithm",
    "SOURCE_FORMAT": "format",
    "SOURCE_IN_SUBDIR": "strip_levels",
    "SOURCE_FILENAME": "filename",
    "SOURCE_EXTRACT": "extract",
}


class StripMode(str, Enum):
    """How many leading path components extraction removes."""

    DISABLED = "disabled"
    DEFAULT_ONE = "default_one"
    EXPLICIT = "explicit"


class StripLevels(BaseModel):
    """Tagged strip depth: ``disabled`` (0), ``default_one`` (1) or ``explicit(n)``."""

    model_config = ConfigDict(frozen=True)

    mode: StripMode = StripMode.DEFAULT_ONE
    count: int = Field(default=0, ge=0)

    @classmethod
    def disabled(cls) -> "StripLevels":
        return cls(mode=StripMode.DISABLED)

    @classmethod
    def default_one(cls) -> "StripLevels":
        return cls(mode=StripMode.DEFAULT_ONE)

    @classmethod
    def explicit(cls, count: int) -> "StripLevels":
        return cls(mode=StripMode.EXPLICIT, count=count)

    @classmethod
    def parse(cls, value: "str | bool | int | StripLevels") -> "StripLevels":
        """Parse a ``SOURCE_IN_SUBDIR`` value (``true``, ``false`` or an integer).

        Raises:
            ValueError: If value is neither a boolean nor a non-negative integer
        """
        if isinstance(value, StripLevels):
            return value
        if isinstance(value, bool):
            return cls.default_one() if value else cls.disabled()
        if isinstance(value, int):
            if value < 0:
                raise ValueError(f"strip levels must be >= 0, got {value}")
            return cls.explicit(value)

        text = str(value).strip().lower()
        if text == "true":
            return cls.default_one()
        if text == "false":
            return cls.disabled()
        if text.isdigit():
            return cls.explicit(int(text))
        raise ValueError(f"expected true, false or a non-negative integer, got '{value}'")

    @property
    def levels(self) -> int:
        """Number of leading path components to remove."""
        if self.mode is StripMode.DISABLED:
            return 0
        if self.mode is StripMode.DEFAULT_ONE:
            return 1
        return self.count

    @property
    def enabled(self) -> bool:
        return self.levels > 0


def normalize_algorithm(name: str) -> str:
    """Map a checksum tool name (``sha256sum``) or algorithm name to its hashlib name.

    Raises:
        ValueError: If hashlib does not provide the algorithm
    """
    algorithm = name.strip().lower()
    if algorithm.endswith("sum"):
        algorithm = algorithm[: -len("sum")]
    if algorithm not in hashlib.algorithms_available:
        raise ValueError(f"unsupported checksum algorithm '{name}'")
    return algorithm


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValueError(f"expected true or false, got '{value}'")


class SourceDescriptor(BaseModel):
    """
    Immutable description of one upstream source artifact.

    ``url`` and ``checksum`` may be absent when a matching file already sits in the
    artifact cache; the pipeline enforces that at fetch time.
    """

    model_config = ConfigDict(frozen=True)

    source_id: str = DEFAULT_SOURCE_ID
    url: str | None = None
    checksum: str | None = None
    checksum_algorithm: str = DEFAULT_ALGORITHM
    format: str = DEFAULT_FORMAT
    extract: bool = True
    strip_levels: StripLevels = Field(default_factory=StripLevels.default_one)
    filename: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_filename(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("filename"):
            source_id = data.get("source_id") or DEFAULT_SOURCE_ID
            fmt = str(data.get("format") or DEFAULT_FORMAT).strip().lower()
            data = {**data, "filename": f"{source_id}.{fmt}"}
        return data

    @field_validator("checksum_algorithm", mode="before")
    @classmethod
    def _normalize_algorithm(cls, value: Any) -> str:
        return normalize_algorithm(str(value))

    @field_validator("format", mode="before")
    @classmethod
    def _normalize_format(cls, value: Any) -> str:
        return str(value).strip().lower()

    @field_validator("extract", mode="before")
    @classmethod
    def _coerce_extract(cls, value: Any) -> bool:
        return _parse_bool(value)

    @field_validator("strip_levels", mode="before")
    @classmethod
    def _coerce_strip_levels(cls, value: Any) -> StripLevels:
        return StripLevels.parse(value)

    @field_validator("url", "checksum", mode="before")
    @classmethod
    def _empty_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @classmethod
    def from_mapping(cls, values: dict[str, str], source_id: str = DEFAULT_SOURCE_ID) -> "SourceDescriptor":
        """
        Build a descriptor from ``SOURCE_*`` keys.

        Args:
            values: Raw descriptor keys and values (unknown keys are ignored)
            source_id: Identifier of the source (names patches, overlay, filename)

        Returns:
            SourceDescriptor instance

        Raises:
            DescriptorError: If a value cannot be interpreted
        """
        fields: dict[str, Any] = {"source_id": source_id}
        for key, value in values.items():
            field = _KEYS.get(key)
            if field is None:
                logger.debug(f"Ignoring unknown descriptor key: {key}")
                continue
            fields[field] = value

        try:
            return cls(**fields)
        except ValidationError as e:
            raise DescriptorError(
                f"Invalid source descriptor for '{source_id}': {e}",
                context={"source_id": source_id},
            ) from e

    @classmethod
    def from_file(cls, path: Path, source_id: str = DEFAULT_SOURCE_ID) -> "SourceDescriptor":
        """
        Load a descriptor from a KEY=VALUE file.

        Blank lines and ``#`` comments are skipped. Values may be wrapped in
        single or double quotes.

        Raises:
            DescriptorError: If the file is missing or holds invalid values
        """
        if not path.is_file():
            raise DescriptorError(
                f"Source descriptor not found: {path}",
                context={"path": str(path), "source_id": source_id},
            )

        values: dict[str, str] = {}
        for lineno, raw in enumerate(path.read_text().splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                raise DescriptorError(
                    f"{path}:{lineno}: expected KEY=VALUE, got '{line}'",
                    context={"path": str(path), "line": lineno},
                )
            key, _, value = line.partition("=")
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]
            values[key.strip()] = value

        logger.debug(f"Loaded {len(values)} descriptor keys from {path}")
        return cls.from_mapping(values, source_id=source_id)

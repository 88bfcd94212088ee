"""Exception types raised by the transcoder and the catalog."""

from __future__ import annotations

from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


class ConversionError(Exception):
    """A single source image could not be turned into a WebP asset."""

    def __init__(self, source: PathLike, reason: str) -> None:
        self.source = Path(source)
        self.reason = reason
        super().__init__(f"{self.source}: {reason}")


class UnsupportedFormat(ConversionError):
    """The source is not a JPEG or PNG image."""


class EncoderUnavailable(ConversionError):
    """Pillow was built without WebP support."""


class DecodeFailed(ConversionError):
    """The source could not be decoded into a raster."""


class EncodeFailed(ConversionError):
    """The raster could not be written as WebP."""


class CatalogError(Exception):
    """The catalog rejected an operation."""


class CatalogCreateFailed(CatalogError):
    """A record could not be created for a relative path."""

    def __init__(self, relative_path: str, reason: str) -> None:
        self.relative_path = relative_path
        self.reason = reason
        super().__init__(f"{relative_path}: {reason}")

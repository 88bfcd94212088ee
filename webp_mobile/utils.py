"""Utility helpers for deriving asset paths and titles."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Union

from .models import MIME_JPEG, MIME_PNG

SOURCE_SUFFIX_PATTERN = re.compile(r"\.(jpe?g|png)$", re.IGNORECASE)
FINAL_EXTENSION_PATTERN = re.compile(r"\.[^.]+$")

_EXTENSION_MIME_TYPES = {
    ".jpg": MIME_JPEG,
    ".jpeg": MIME_JPEG,
    ".jpe": MIME_JPEG,
    ".png": MIME_PNG,
}


def derived_webp_path(source: Union[str, Path]) -> Optional[Path]:
    """Return the sibling ``.webp`` path for a JPEG/PNG source, or None.

    Only a trailing ``.jpg``, ``.jpeg`` or ``.png`` (any case) is rewritten,
    so ``archive.jpegx`` yields None instead of a mangled name.
    """
    source = Path(source)
    new_name, count = SOURCE_SUFFIX_PATTERN.subn(".webp", source.name)
    if not count:
        return None
    return source.with_name(new_name)


def relative_asset_path(path: Union[str, Path], asset_root: Union[str, Path]) -> Optional[str]:
    """Path relative to the asset root in POSIX form, or None when outside it."""
    try:
        return Path(path).relative_to(Path(asset_root)).as_posix()
    except ValueError:
        return None


def title_from_filename(name: str) -> str:
    """Strip the final extension from a base name."""
    return FINAL_EXTENSION_PATTERN.sub("", Path(name).name)


def source_kind_from_extension(path: Union[str, Path]) -> Optional[str]:
    return _EXTENSION_MIME_TYPES.get(Path(path).suffix.lower())

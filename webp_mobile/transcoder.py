"""JPEG/PNG to WebP transcoding with mobile-friendly downscaling."""

from __future__ import annotations

import logging
import os
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from filetype import guess
from PIL import Image, features

from .config import MOBILE_MAX_WIDTH, WEBP_QUALITY
from .errors import DecodeFailed, EncodeFailed, EncoderUnavailable, UnsupportedFormat
from .models import MIME_JPEG, MIME_PNG, SOURCE_MIME_TYPES, SourceImage
from .utils import derived_webp_path, source_kind_from_extension

logger = logging.getLogger("webp_mobile")

RESAMPLE_FILTER = Image.Resampling.BILINEAR
PILLOW_FORMATS = {MIME_JPEG: "JPEG", MIME_PNG: "PNG"}
_DECODE_ERRORS = (OSError, SyntaxError, ValueError, Image.DecompressionBombError)


def detect_source_kind(path: Path) -> Optional[str]:
    """Sniff the MIME type from the file signature, falling back to the extension."""
    try:
        kind = guess(str(path))
    except OSError as exc:
        logger.debug("Could not sniff %s: %s", path, exc)
        kind = None
    if kind is not None:
        return kind.mime
    return source_kind_from_extension(path)


def webp_supported() -> bool:
    return bool(features.check("webp"))


def _has_transparency(image: Image.Image) -> bool:
    return "A" in image.getbands() or "transparency" in image.info


def _normalize_mode(image: Image.Image, mime_type: str) -> Image.Image:
    if mime_type == MIME_PNG and _has_transparency(image):
        target_mode = "RGBA"
    else:
        target_mode = "RGB"
    if image.mode == target_mode:
        return image
    return image.convert(target_mode)


@contextmanager
def open_source_raster(path: Path, mime_type: str) -> Iterator[Image.Image]:
    """Decode a source with the format-specific decoder and close it on exit."""
    try:
        image = Image.open(path, formats=[PILLOW_FORMATS[mime_type]])
    except _DECODE_ERRORS as exc:
        raise DecodeFailed(path, f"cannot open as {mime_type}: {exc}") from exc

    try:
        image.load()
        raster = _normalize_mode(image, mime_type)
    except _DECODE_ERRORS as exc:
        image.close()
        raise DecodeFailed(path, f"cannot decode: {exc}") from exc

    if raster is not image:
        image.close()
    try:
        yield raster
    finally:
        raster.close()


def downscale_for_mobile(image: Image.Image, max_width: int = MOBILE_MAX_WIDTH) -> Image.Image:
    """Return a copy no wider than ``max_width``, or the image itself if it already fits.

    The aspect ratio is kept. Images with alpha are resampled band by band so
    colour under low alpha is not lost to 8-bit premultiplication.
    """
    width, height = image.size
    if width <= max_width:
        return image
    ratio = max_width / width
    new_size = (max_width, max(1, round(height * ratio)))
    logger.debug("Resizing %dx%d -> %dx%d", width, height, *new_size)
    if "A" not in image.getbands():
        return image.resize(new_size, RESAMPLE_FILTER)
    bands = [band.resize(new_size, RESAMPLE_FILTER) for band in image.split()]
    return Image.merge(image.mode, bands)


def _encode_webp(image: Image.Image, source: Path, target: Path, quality: int) -> None:
    # Encode next to the target and rename so a failure never leaves a partial file.
    tmp_path = target.with_name(f".{target.stem}.{os.getpid()}.tmp")
    try:
        image.save(tmp_path, format="WEBP", quality=quality, alpha_quality=100)
        os.replace(tmp_path, target)
    except (OSError, ValueError, KeyError) as exc:
        tmp_path.unlink(missing_ok=True)
        raise EncodeFailed(source, f"cannot write {target}: {exc}") from exc


def convert_to_webp(
    source: Union[str, Path],
    max_width: int = MOBILE_MAX_WIDTH,
    quality: int = WEBP_QUALITY,
) -> Path:
    """Convert a JPEG or PNG to a sibling WebP file and return its path.

    Raises a ``ConversionError`` subclass describing why the file could not
    be converted. Nothing is written unless encoding succeeds.
    """
    source = Path(source)
    mime_type = detect_source_kind(source)
    if mime_type not in SOURCE_MIME_TYPES:
        raise UnsupportedFormat(source, f"unsupported type {mime_type or 'unknown'}")

    target = derived_webp_path(source)
    if target is None:
        raise UnsupportedFormat(source, "extension is not .jpg, .jpeg or .png")

    if not webp_supported():
        raise EncoderUnavailable(source, "Pillow was built without WebP support")

    with ExitStack() as stack:
        raster = stack.enter_context(open_source_raster(source, mime_type))
        original = SourceImage(source, mime_type, *raster.size)
        prepared = downscale_for_mobile(raster, max_width)
        if prepared is not raster:
            stack.callback(prepared.close)
        output_size = prepared.size
        _encode_webp(prepared, source, target, quality)

    logger.info(
        "Converted %s (%dx%d) -> %s (%dx%d)",
        source,
        original.width,
        original.height,
        target,
        *output_size,
    )
    return target

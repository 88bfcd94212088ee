"""Hooks that run when a new image is uploaded into the asset root."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .catalog import Catalog
from .config import ConverterConfig
from .errors import CatalogError, ConversionError
from .models import CatalogRecord, UploadResult
from .reconciler import Reconciler
from .transcoder import convert_to_webp, detect_source_kind
from .utils import relative_asset_path, title_from_filename

logger = logging.getLogger("webp_mobile")

FALLBACK_MIME_TYPE = "application/octet-stream"


def handle_upload(source: Union[str, Path], config: ConverterConfig) -> Optional[Path]:
    """Transcode a freshly uploaded file; failures are logged, never raised."""
    try:
        return convert_to_webp(source, max_width=config.max_width, quality=config.quality)
    except ConversionError as exc:
        logger.warning("No WebP variant for %s: %s", exc.source, exc.reason)
        return None


def on_record_added(record: CatalogRecord, reconciler: Reconciler) -> Optional[CatalogRecord]:
    """Attach the WebP sibling of a newly added source record, if it exists."""
    try:
        return reconciler.register_for_source(record)
    except CatalogError as exc:
        logger.error("Failed to register WebP variant of record %d: %s", record.id, exc)
        return None


def ingest_upload(
    source: Union[str, Path],
    catalog: Catalog,
    config: ConverterConfig,
) -> UploadResult:
    """Run the full upload pipeline for a file already placed under the asset root."""
    source = Path(source)
    webp_path = handle_upload(source, config)

    relative_path = relative_asset_path(source, config.asset_root)
    if relative_path is None:
        logger.error("Cannot register %s: outside asset root %s", source, config.asset_root)
        return UploadResult(source, webp_path, None, None)

    source_record = catalog.find_by_relative_path(relative_path)
    if source_record is None:
        try:
            source_record = catalog.create_record(
                relative_path,
                detect_source_kind(source) or FALLBACK_MIME_TYPE,
                title_from_filename(source.name),
            )
        except CatalogError as exc:
            logger.error("Failed to register %s: %s", relative_path, exc)
            return UploadResult(source, webp_path, None, None)
        try:
            catalog.generate_and_persist_metadata(source_record, source)
        except CatalogError as exc:
            logger.warning("Registered %s but metadata generation failed: %s", relative_path, exc)

    reconciler = Reconciler(catalog, config.asset_root)
    webp_record = on_record_added(source_record, reconciler)
    return UploadResult(source, webp_path, source_record, webp_record)

"""Administrative convert-all-and-register trigger."""

from __future__ import annotations

import logging

from .catalog import Catalog
from .config import ConverterConfig
from .errors import DecodeFailed, EncodeFailed, UnsupportedFormat
from .models import SOURCE_MIME_TYPES, BulkReport
from .reconciler import WEBP_SUFFIX, Reconciler
from .transcoder import convert_to_webp, webp_supported

logger = logging.getLogger("webp_mobile")


def convert_all(catalog: Catalog, config: ConverterConfig) -> BulkReport:
    """Convert every JPEG/PNG record to WebP, then register new WebP files.

    Only decode and encode errors count as failures. The registration scan
    always runs, even when Pillow cannot write WebP.
    """
    report = BulkReport(encoder_available=webp_supported())
    if not report.encoder_available:
        logger.error("Pillow was built without WebP support; skipping conversion")
    else:
        for record in catalog.query_by_mime_types(SOURCE_MIME_TYPES):
            source = catalog.get_underlying_path(record)
            if source.suffix.lower() == WEBP_SUFFIX or not source.is_file():
                logger.debug("Skipping record %d (%s)", record.id, source)
                report.skipped += 1
                continue
            try:
                convert_to_webp(source, max_width=config.max_width, quality=config.quality)
            except UnsupportedFormat as exc:
                logger.debug("Skipping %s: %s", source, exc.reason)
                report.skipped += 1
            except (DecodeFailed, EncodeFailed) as exc:
                logger.warning("Failed to convert %s: %s", source, exc.reason)
                report.failed += 1
            else:
                report.converted += 1

    reconciler = Reconciler(catalog, config.asset_root)
    report.registered = reconciler.scan().registered
    return report


def format_report(report: BulkReport) -> str:
    """Render the operator-facing summary of a convert-all run."""
    lines = []
    if not report.encoder_available:
        lines.append("WebP encoding is not available in this Pillow build; nothing was converted.")
    lines.append(
        f"Conversion complete. {report.converted} image(s) converted. "
        f"{report.failed} image(s) failed to convert."
    )
    if report.registered > 0:
        lines.append(
            f"Bulk registration complete. {report.registered} WebP image(s) were added to the catalog."
        )
    return "\n".join(lines)

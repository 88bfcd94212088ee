"""Keep the catalog in sync with the WebP files present under the asset root."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Optional, Union

from .catalog import Catalog
from .errors import CatalogCreateFailed, CatalogError
from .models import MIME_WEBP, SOURCE_MIME_TYPES, STATUS_INHERIT, CatalogRecord, ScanReport
from .utils import derived_webp_path, relative_asset_path, title_from_filename

logger = logging.getLogger("webp_mobile")

WEBP_SUFFIX = ".webp"


def iter_webp_assets(root: Path) -> Iterator[Path]:
    """Yield every regular file under ``root`` whose extension is ``.webp``.

    Files are classified by name only; the content is never inspected.
    """
    for path in root.rglob("*"):
        if path.suffix.lower() == WEBP_SUFFIX and path.is_file():
            yield path


class Reconciler:
    """Registers WebP assets with a catalog, at most once per relative path."""

    def __init__(self, catalog: Catalog, asset_root: Union[str, Path]) -> None:
        self.catalog = catalog
        self.asset_root = Path(asset_root)

    def register_if_absent(
        self,
        asset_path: Union[str, Path],
        parent: Optional[CatalogRecord] = None,
    ) -> Optional[CatalogRecord]:
        """Create a catalog record for ``asset_path`` unless one already exists.

        Returns the new record, or None when the file is missing, lies outside
        the asset root, or is already registered. Raises ``CatalogCreateFailed``
        when the catalog refuses to create the record.
        """
        asset_path = Path(asset_path)
        if not asset_path.exists():
            logger.debug("Skipping %s: file does not exist", asset_path)
            return None

        relative_path = relative_asset_path(asset_path, self.asset_root)
        if relative_path is None:
            logger.warning("Skipping %s: outside asset root %s", asset_path, self.asset_root)
            return None

        if self.catalog.find_by_relative_path(relative_path) is not None:
            logger.debug("Already registered: %s", relative_path)
            return None
        try:
            record = self.catalog.create_record(
                relative_path,
                MIME_WEBP,
                title_from_filename(asset_path.name),
                status=STATUS_INHERIT,
                parent=parent,
            )
        except CatalogError as exc:
            # Another registration for the same path won between lookup and create.
            if self.catalog.find_by_relative_path(relative_path) is not None:
                logger.debug("Already registered: %s", relative_path)
                return None
            if isinstance(exc, CatalogCreateFailed):
                raise
            raise CatalogCreateFailed(relative_path, str(exc)) from exc

        try:
            self.catalog.generate_and_persist_metadata(record, asset_path)
        except CatalogError as exc:
            logger.warning("Registered %s but metadata generation failed: %s", relative_path, exc)

        logger.info(
            "Registered %s as record %d%s",
            relative_path,
            record.id,
            f" (child of {parent.id})" if parent is not None else "",
        )
        return record

    def register_for_source(self, record: CatalogRecord) -> Optional[CatalogRecord]:
        """Register the WebP sibling of a JPEG/PNG record as its child."""
        if record.mime_type not in SOURCE_MIME_TYPES:
            return None
        source_path = self.catalog.get_underlying_path(record)
        webp_path = derived_webp_path(source_path)
        if webp_path is None:
            logger.debug("No WebP sibling name for %s", source_path)
            return None
        return self.register_if_absent(webp_path, parent=record)

    def scan(self) -> ScanReport:
        """Walk the asset root and register every unregistered WebP file."""
        report = ScanReport()
        if not self.asset_root.is_dir():
            logger.warning("Asset root %s is not a directory", self.asset_root)
            return report

        for asset_path in iter_webp_assets(self.asset_root):
            try:
                record = self.register_if_absent(asset_path)
            except CatalogCreateFailed as exc:
                logger.error("Failed to register %s: %s", asset_path, exc.reason)
                report.failed += 1
                continue
            if record is None:
                report.already_registered += 1
            else:
                report.registered += 1

        logger.info(
            "Scan of %s finished (%d registered, %d already present, %d failed)",
            self.asset_root,
            report.registered,
            report.already_registered,
            report.failed,
        )
        return report

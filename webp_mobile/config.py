"""Configuration objects and constants for the converter."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

MOBILE_MAX_WIDTH = 1024
WEBP_QUALITY = 80
DEFAULT_CATALOG_FILENAME = ".webp-catalog.json"
ASSET_ROOT_ENV = "WEBP_MOBILE_ROOT"


@dataclass
class ConverterConfig:
    """Settings shared by the transcoder, the reconciler and the admin trigger."""

    asset_root: Path
    max_width: int = MOBILE_MAX_WIDTH
    quality: int = WEBP_QUALITY
    catalog_path: Optional[Path] = None
    base_url: Optional[str] = None

    def resolved_catalog_path(self) -> Path:
        if self.catalog_path is not None:
            return self.catalog_path
        return self.asset_root / DEFAULT_CATALOG_FILENAME

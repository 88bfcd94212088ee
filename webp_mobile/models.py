"""Data models shared by the transcoder, catalog and reconciler."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

MIME_JPEG = "image/jpeg"
MIME_PNG = "image/png"
MIME_WEBP = "image/webp"
SOURCE_MIME_TYPES = (MIME_JPEG, MIME_PNG)

STATUS_INHERIT = "inherit"


@dataclass(frozen=True)
class SourceImage:
    """A decoded JPEG or PNG source."""

    path: Path
    mime_type: str
    width: int
    height: int


@dataclass
class CatalogRecord:
    """Registered asset as stored by a catalog."""

    id: int
    relative_path: str
    mime_type: str
    title: str
    status: str = STATUS_INHERIT
    parent_id: Optional[int] = None
    guid: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ScanReport:
    """Outcome of a bulk directory scan."""

    registered: int = 0
    already_registered: int = 0
    failed: int = 0


@dataclass
class BulkReport:
    """Outcome of the administrative convert-all trigger."""

    converted: int = 0
    failed: int = 0
    skipped: int = 0
    registered: int = 0
    encoder_available: bool = True


@dataclass
class UploadResult:
    """Records touched while ingesting one uploaded file."""

    source: Path
    webp_path: Optional[Path]
    source_record: Optional[CatalogRecord]
    webp_record: Optional[CatalogRecord]

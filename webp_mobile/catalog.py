"""Catalog collaborator interface and the bundled implementations."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from PIL import Image, UnidentifiedImageError

from .errors import CatalogCreateFailed, CatalogError
from .models import STATUS_INHERIT, CatalogRecord

logger = logging.getLogger("webp_mobile")

CATALOG_FORMAT_VERSION = 1


class Catalog(Protocol):
    """The narrow view of an asset catalog the reconciler relies on."""

    def find_by_relative_path(self, relative_path: str) -> Optional[CatalogRecord]:
        ...

    def create_record(
        self,
        relative_path: str,
        mime_type: str,
        title: str,
        status: str = STATUS_INHERIT,
        parent: Optional[CatalogRecord] = None,
    ) -> CatalogRecord:
        ...

    def generate_and_persist_metadata(self, record: CatalogRecord, asset_path: Path) -> None:
        ...

    def get_underlying_path(self, record: CatalogRecord) -> Path:
        ...

    def query_by_mime_types(self, mime_types: Sequence[str]) -> Iterable[CatalogRecord]:
        ...


def build_attachment_metadata(relative_path: str, asset_path: Path) -> Dict[str, object]:
    """Collect file size and, when decodable, pixel dimensions for an asset."""
    try:
        filesize = asset_path.stat().st_size
    except OSError as exc:
        raise CatalogError(f"cannot stat {asset_path}: {exc}") from exc

    metadata: Dict[str, object] = {"file": relative_path, "filesize": filesize}
    try:
        with Image.open(asset_path) as image:
            metadata["width"], metadata["height"] = image.size
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        logger.debug("No dimensions for %s: %s", asset_path, exc)
    return metadata


class InMemoryCatalog:
    """Dictionary-backed catalog that enforces one record per relative path."""

    def __init__(self, asset_root: Path, base_url: Optional[str] = None) -> None:
        self.asset_root = Path(asset_root)
        self.base_url = base_url.rstrip("/") if base_url else None
        self._records: Dict[int, CatalogRecord] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> List[CatalogRecord]:
        with self._lock:
            return list(self._records.values())

    def get(self, record_id: int) -> Optional[CatalogRecord]:
        return self._records.get(record_id)

    def find_by_relative_path(self, relative_path: str) -> Optional[CatalogRecord]:
        with self._lock:
            return self._lookup(relative_path)

    def _lookup(self, relative_path: str) -> Optional[CatalogRecord]:
        for record in self._records.values():
            if record.relative_path == relative_path:
                return record
        return None

    def create_record(
        self,
        relative_path: str,
        mime_type: str,
        title: str,
        status: str = STATUS_INHERIT,
        parent: Optional[CatalogRecord] = None,
    ) -> CatalogRecord:
        with self._lock:
            if self._lookup(relative_path) is not None:
                raise CatalogCreateFailed(relative_path, "a record for this path already exists")
            if parent is not None and parent.id not in self._records:
                raise CatalogCreateFailed(relative_path, f"unknown parent record {parent.id}")

            record = CatalogRecord(
                id=self._next_id,
                relative_path=relative_path,
                mime_type=mime_type,
                title=title,
                status=status,
                parent_id=parent.id if parent is not None else None,
                guid=f"{self.base_url}/{relative_path}" if self.base_url else None,
            )
            self._records[record.id] = record
            self._next_id += 1
            try:
                self._persist()
            except CatalogError as exc:
                del self._records[record.id]
                raise CatalogCreateFailed(relative_path, str(exc)) from exc
            return record

    def generate_and_persist_metadata(self, record: CatalogRecord, asset_path: Path) -> None:
        metadata = build_attachment_metadata(record.relative_path, Path(asset_path))
        with self._lock:
            if record.id not in self._records:
                raise CatalogError(f"record {record.id} is not in the catalog")
            record.metadata = metadata
            self._persist()

    def get_underlying_path(self, record: CatalogRecord) -> Path:
        return self.asset_root / record.relative_path

    def query_by_mime_types(self, mime_types: Sequence[str]) -> Iterable[CatalogRecord]:
        wanted = set(mime_types)
        with self._lock:
            return [record for record in self._records.values() if record.mime_type in wanted]

    def _persist(self) -> None:
        """Hook for subclasses that keep the records somewhere durable."""


class JsonFileCatalog(InMemoryCatalog):
    """Catalog persisted as a JSON document, rewritten after every change."""

    def __init__(self, path: Path, asset_root: Path, base_url: Optional[str] = None) -> None:
        super().__init__(asset_root, base_url)
        self.path = Path(path)
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CatalogError(f"cannot read catalog {self.path}: {exc}") from exc

        try:
            for entry in payload.get("records", []):
                record = CatalogRecord(**entry)
                self._records[record.id] = record
            self._next_id = max(payload.get("next_id", 1), max(self._records, default=0) + 1)
        except (AttributeError, TypeError, ValueError) as exc:
            self._records.clear()
            raise CatalogError(f"malformed catalog {self.path}: {exc}") from exc
        logger.debug("Loaded %d record(s) from %s", len(self._records), self.path)

    def _persist(self) -> None:
        payload = {
            "version": CATALOG_FORMAT_VERSION,
            "next_id": self._next_id,
            "records": [asdict(record) for record in self._records.values()],
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as exc:
            raise CatalogError(f"cannot write catalog {self.path}: {exc}") from exc

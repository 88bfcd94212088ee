from __future__ import annotations

from pathlib import Path
from typing import Callable, Tuple

import pytest
from PIL import Image

from webp_mobile.catalog import InMemoryCatalog
from webp_mobile.config import ConverterConfig
from webp_mobile.errors import CatalogError
from webp_mobile.reconciler import Reconciler

Size = Tuple[int, int]


@pytest.fixture
def asset_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def config(asset_root: Path) -> ConverterConfig:
    return ConverterConfig(asset_root=asset_root)


@pytest.fixture
def catalog(asset_root: Path) -> InMemoryCatalog:
    return InMemoryCatalog(asset_root)


@pytest.fixture
def reconciler(catalog: InMemoryCatalog, asset_root: Path) -> Reconciler:
    return Reconciler(catalog, asset_root)


@pytest.fixture
def make_jpeg() -> Callable[..., Path]:
    def _make(path: Path, size: Size, color=(200, 40, 40)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, color).save(path, format="JPEG", quality=90)
        return path

    return _make


@pytest.fixture
def make_png() -> Callable[..., Path]:
    def _make(path: Path, size: Size, color=(20, 120, 220, 255)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        mode = "RGBA" if len(color) == 4 else "RGB"
        Image.new(mode, size, color).save(path, format="PNG")
        return path

    return _make


@pytest.fixture
def make_webp() -> Callable[..., Path]:
    def _make(path: Path, size: Size = (64, 48)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, (10, 200, 10)).save(path, format="WEBP", quality=80)
        return path

    return _make


class RefusingCatalog(InMemoryCatalog):
    """Refuses to create WebP records whose path contains ``refuse``."""

    def create_record(self, relative_path, *args, **kwargs):
        if "refuse" in relative_path and relative_path.endswith(".webp"):
            raise CatalogError("storage rejected the insert")
        return super().create_record(relative_path, *args, **kwargs)


@pytest.fixture
def refusing_catalog(asset_root: Path) -> RefusingCatalog:
    return RefusingCatalog(asset_root)

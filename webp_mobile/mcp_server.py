"""MCP server exposing the convert-all and scan tools."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .admin import convert_all as run_convert_all
from .admin import format_report
from .catalog import JsonFileCatalog
from .config import ASSET_ROOT_ENV, ConverterConfig
from .reconciler import Reconciler

logger = logging.getLogger("webp_mobile.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="webp-mobile")


def _load(root: str | None) -> tuple[ConverterConfig, JsonFileCatalog]:
    asset_root = Path(root or os.getenv(ASSET_ROOT_ENV, ".")).expanduser().resolve()
    if not asset_root.is_dir():
        raise FileNotFoundError(f"Asset root does not exist: {asset_root}")
    config = ConverterConfig(asset_root=asset_root)
    catalog = JsonFileCatalog(config.resolved_catalog_path(), config.asset_root)
    return config, catalog


@mcp.tool()
def convert_all(root: str | None = None) -> str:
    """Convert every catalogued JPEG/PNG to WebP and register new WebP files."""
    config, catalog = _load(root)
    return format_report(run_convert_all(catalog, config))


@mcp.tool()
def scan(root: str | None = None) -> str:
    """Register WebP files under the asset root that are missing from the catalog."""
    config, catalog = _load(root)
    report = Reconciler(catalog, config.asset_root).scan()
    return (
        f"{report.registered} WebP image(s) registered, "
        f"{report.already_registered} already present, {report.failed} failed."
    )


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()

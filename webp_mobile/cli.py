"""Command-line entry point for the WebP converter."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import Iterable, Sequence

from .admin import convert_all, format_report
from .catalog import JsonFileCatalog
from .config import ASSET_ROOT_ENV, ConverterConfig
from .errors import CatalogError
from .reconciler import Reconciler
from .uploads import handle_upload, ingest_upload

logger = logging.getLogger("webp_mobile.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("convert", *argv)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_catalog_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--root",
        type=Path,
        default=Path(os.getenv(ASSET_ROOT_ENV, ".")),
        help=f"Asset root holding the images (default: ${ASSET_ROOT_ENV} or the current directory)",
    )
    parser.add_argument(
        "--catalog",
        type=Path,
        default=None,
        help="Catalog JSON file (default: <root>/.webp-catalog.json)",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Public URL of the asset root, stored on new records",
    )
    _add_common_arguments(parser)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Convert JPEG/PNG images to mobile-sized WebP files and keep a catalog of them in sync."
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert_parser = subparsers.add_parser(
        "convert", help="Convert individual JPEG/PNG files to WebP"
    )
    convert_parser.add_argument("paths", nargs="+", type=Path, help="Images to convert")
    _add_common_arguments(convert_parser)

    ingest_parser = subparsers.add_parser(
        "ingest", help="Convert uploaded files and register them and their WebP variants"
    )
    ingest_parser.add_argument("paths", nargs="+", type=Path, help="Files under the asset root")
    _add_catalog_arguments(ingest_parser)

    scan_parser = subparsers.add_parser(
        "scan", help="Register every WebP file under the asset root that the catalog lacks"
    )
    _add_catalog_arguments(scan_parser)

    convert_all_parser = subparsers.add_parser(
        "convert-all", help="Convert every catalogued JPEG/PNG, then scan for new WebP files"
    )
    _add_catalog_arguments(convert_all_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _build_config(args: argparse.Namespace) -> ConverterConfig:
    root = Path(args.root).resolve()
    if not root.is_dir():
        raise SystemExit(f"Asset root not found: {root}")
    return ConverterConfig(
        asset_root=root,
        catalog_path=args.catalog.resolve() if args.catalog else None,
        base_url=args.base_url,
    )


def _open_catalog(config: ConverterConfig) -> JsonFileCatalog:
    try:
        return JsonFileCatalog(config.resolved_catalog_path(), config.asset_root, config.base_url)
    except CatalogError as exc:
        raise SystemExit(str(exc)) from exc


def _run_convert(args: argparse.Namespace) -> None:
    config = ConverterConfig(asset_root=Path.cwd())
    start = time.perf_counter()
    converted = [path for path in args.paths if handle_upload(path, config) is not None]
    logger.info(
        "Finished in %.2fs (%d/%d converted)",
        time.perf_counter() - start,
        len(converted),
        len(args.paths),
    )


def _run_ingest(args: argparse.Namespace) -> None:
    config = _build_config(args)
    catalog = _open_catalog(config)
    for path in args.paths:
        result = ingest_upload(Path(path).resolve(), catalog, config)
        if result.source_record is not None:
            logger.debug(
                "Ingested %s as record %d (WebP record: %s)",
                result.source,
                result.source_record.id,
                result.webp_record.id if result.webp_record else "none",
            )


def _run_scan(args: argparse.Namespace) -> None:
    config = _build_config(args)
    catalog = _open_catalog(config)
    report = Reconciler(catalog, config.asset_root).scan()
    sys.stdout.write(
        f"Bulk registration complete. {report.registered} WebP image(s) were added to the catalog.\n"
    )
    if report.failed:
        sys.stdout.write(f"{report.failed} WebP image(s) could not be registered.\n")


def _run_convert_all(args: argparse.Namespace) -> None:
    config = _build_config(args)
    catalog = _open_catalog(config)
    start = time.perf_counter()
    report = convert_all(catalog, config)
    logger.debug("convert-all finished in %.2fs", time.perf_counter() - start)
    sys.stdout.write(format_report(report) + "\n")


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    if args.command == "convert":
        _run_convert(args)
    elif args.command == "ingest":
        _run_ingest(args)
    elif args.command == "scan":
        _run_scan(args)
    else:
        _run_convert_all(args)


if __name__ == "__main__":
    main()

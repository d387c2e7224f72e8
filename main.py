from __future__ import annotations

import argparse
from pathlib import Path
import sys

from loguru import logger

from app.viewmodels.main_vm import MainVM
from core.models import ExportFormat, ImportMode, OverwriteOption
from infrastructure.logging import init_logging
from infrastructure.settings import JsonSettings

BASE_DIR = Path(__file__).parent

_OVERWRITE_CHOICES = {
    "all": OverwriteOption.OVERWRITE_ALL,
    "skip": OverwriteOption.SKIP_EXISTING,
    "cancel": OverwriteOption.CANCEL,
}


def _load_settings(path: str | None) -> JsonSettings:
    if path is not None:
        return JsonSettings(path)
    default_path = BASE_DIR / "settings.json"
    return JsonSettings(default_path) if default_path.exists() else JsonSettings()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photo-sequencer",
        description="Rename, merge and convert ordered photo batches.",
    )
    parser.add_argument("--settings", help="Path to settings.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Also log to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p_rename = sub.add_parser("rename", help="Renumber every photo in DIR under a prefix")
    p_rename.add_argument("directory")
    p_rename.add_argument("--prefix", help="Defaults to the prefix the files already share")

    p_import = sub.add_parser("import", help="Merge FILES into the batch in DIR")
    p_import.add_argument("directory")
    p_import.add_argument("files", nargs="+")
    p_import.add_argument("--prefix", help="Defaults to the prefix the files already share")
    p_import.add_argument(
        "--distribute", action="store_true", help="Spread new files evenly instead of appending"
    )

    p_export = sub.add_parser("export", help="Convert the batch in DIR to another format")
    p_export.add_argument("directory")
    p_export.add_argument("--format", choices=["webp", "png", "jpg"], default="webp")
    p_export.add_argument(
        "--overwrite",
        choices=sorted(_OVERWRITE_CHOICES),
        default="skip",
        help="What to do with outputs that already exist",
    )
    return parser


def _run(vm: MainVM, args: argparse.Namespace) -> bool:
    vm.load_directory(args.directory)
    if getattr(args, "prefix", None):
        vm.rename_prefix = args.prefix

    if args.command == "rename":
        return vm.apply_rename().success

    if args.command == "import":
        mode = ImportMode.DISTRIBUTE if args.distribute else ImportMode.APPEND
        return vm.import_files(args.files, mode).success

    fmt = ExportFormat[args.format.upper()]
    option = _OVERWRITE_CHOICES[args.overwrite]

    def _progress(current: int, total: int, status: str) -> None:
        logger.debug("Export progress {}/{}: {}", current, total, status)

    result = vm.export_entries(fmt, overwrite_decider=lambda _names: option, progress=_progress)
    return result.success


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = _load_settings(args.settings)
    init_logging(
        settings.get("logging.dir"),
        level=str(settings.get("logging.level", "INFO")),
        console=args.verbose,
    )

    vm = MainVM(settings=settings)
    try:
        ok = _run(vm, args)
    except OSError as ex:
        logger.error("Cannot process {}: {}", args.directory, ex)
        print(f"Error: {ex}", file=sys.stderr)
        return 1
    finally:
        vm.close()

    print(vm.status_message)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())

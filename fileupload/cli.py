"""Command line interface for fileupload package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import UploadListDisplay, render_configuration_summary, render_upload_list
from .models import RawFile, UploadConfig, UploadFile
from .orchestrator import FilePicker, UploadOrchestrator


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=True,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _parse_pairs(values: Optional[Sequence[str]], sep: str, option: str) -> Dict[str, str]:
    """Parse repeated ``KEY<sep>VALUE`` options into a dict."""
    pairs: Dict[str, str] = {}
    for item in values or []:
        if sep not in item:
            raise CLIError(f"{option} expects KEY{sep}VALUE, got: {item!r}")
        key, value = item.split(sep, 1)
        key = key.strip()
        if not key:
            raise CLIError(f"{option} has an empty key: {item!r}")
        pairs[key] = _strip_optional_quotes(value.strip())
    return pairs


def _build_config(args: argparse.Namespace) -> UploadConfig:
    try:
        return UploadConfig.from_env(
            action=args.action,
            name=args.name,
            data=_parse_pairs(args.data, "=", "--data"),
            headers=_parse_pairs(args.header, ":", "--header"),
            with_credentials=True if args.with_credentials else None,
            accept=args.accept,
            multiple=False if args.single else None,
            timeout=args.timeout,
        )
    except ValueError as exc:
        raise CLIError(f"{exc} (pass --action or set FILEUPLOAD_ACTION)") from exc


def _size_gate(max_size: Optional[int]):
    if max_size is None:
        return None

    def before_upload(raw: RawFile) -> bool:
        return raw.size <= max_size

    return before_upload


async def _run_upload(
    config: UploadConfig,
    sources: List[Path],
    max_size: Optional[int] = None,
) -> int:
    picker = FilePicker(accept=config.accept, multiple=config.multiple)
    try:
        files = picker.select(sources, expand_dirs=True)
    except OSError as exc:
        raise CLIError(str(exc)) from exc
    if not files:
        raise CLIError("no files to upload (check --accept)")

    display = UploadListDisplay()
    results: List[UploadFile] = []
    async with UploadOrchestrator(config, before_upload=_size_gate(max_size)) as orchestrator:
        display.attach(orchestrator)
        display.start()
        try:
            admitted = await orchestrator.submit(files)
            results = await orchestrator.wait()
        finally:
            display.stop()

    skipped = len(files) - len(admitted)
    if skipped:
        print(f"Skipped {skipped} file(s) larger than {max_size} bytes", file=sys.stderr)
    if not results:
        raise CLIError("no files were admitted for upload")

    render_upload_list(results)
    return 0 if all(entry.success for entry in results) else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="file-up",
        description="Upload files as multipart/form-data, each file in its own request.",
    )
    parser.add_argument("sources", nargs="*", type=Path, help="Files or folders to upload")
    parser.add_argument(
        "-a",
        "--action",
        default=None,
        help="Upload endpoint URL (default from FILEUPLOAD_ACTION)",
    )
    parser.add_argument(
        "-n",
        "--name",
        default=None,
        help="Form field name for the file content (default: file)",
    )
    parser.add_argument(
        "-d",
        "--data",
        action="append",
        metavar="KEY=VALUE",
        help="Extra form field, repeatable",
    )
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        metavar="KEY:VALUE",
        help="Extra request header, repeatable",
    )
    parser.add_argument(
        "--with-credentials",
        action="store_true",
        help="Send credentials with the upload requests",
    )
    parser.add_argument(
        "--accept",
        default=None,
        help="Accepted extensions/types, e.g. '.png,.jpg,image/*'",
    )
    parser.add_argument(
        "--single",
        action="store_true",
        help="Only upload the first selected file",
    )
    parser.add_argument(
        "--max-size",
        type=int,
        default=None,
        help="Skip files larger than this many bytes",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="file-up (from fileupload)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if not args.sources:
        parser.print_help()
        return 0

    try:
        config = _build_config(args)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Sources": ", ".join(str(s) for s in args.sources),
            "Action": config.action,
            "Field": config.field_name,
            "Data": ", ".join(config.data) or "-",
            "Headers": ", ".join(config.headers) or "-",
            "Credentials": "yes" if config.with_credentials else "no",
            "Accept": config.accept or "*",
            "Max Size": args.max_size if args.max_size is not None else "-",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(_run_upload(config, list(args.sources), max_size=args.max_size))
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()

"""Command line interface for bulk_uploader package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import (
    BatchUploadProgressDisplay,
    render_configuration_summary,
    render_ping_result,
)


EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CRITICAL = 2
EXIT_INTERRUPTED = 130

CREDENTIAL_ENV_VARS = (
    "CLOUDINARY_API_KEY",
    "CLOUDINARY_API_SECRET",
    "CLOUDINARY_CLOUD_NAME",
)


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

    if silent or (not debug and not log_level and not os.getenv("LOG_LEVEL")):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    elif log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        env_level = os.getenv("LOG_LEVEL")
        level = getattr(logging, (env_level or "INFO").upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _normalize_folder(folder: Optional[str]) -> Optional[str]:
    if folder is None:
        return None
    value = folder.strip()
    if value in {"", "/"}:
        return None
    return value.lstrip("/").rstrip("/")


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


def _read_credentials() -> Dict[str, str]:
    missing = [name for name in CREDENTIAL_ENV_VARS if not os.getenv(name)]
    if missing:
        raise CLIError(f"missing environment variable(s): {', '.join(missing)}")
    return {
        "api_key": os.environ["CLOUDINARY_API_KEY"],
        "api_secret": os.environ["CLOUDINARY_API_SECRET"],
        "cloud_name": os.environ["CLOUDINARY_CLOUD_NAME"],
    }


def _parse_params(pairs: Optional[Sequence[str]]) -> Dict[str, Any]:
    """Parse repeated KEY=VALUE options into upload parameters."""
    params: Dict[str, Any] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise CLIError(f"invalid --param {pair!r}, expected KEY=VALUE")
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise CLIError(f"invalid --param {pair!r}, empty key")
        params[key] = _strip_optional_quotes(value.strip())
    return params


def _decode_line_sep(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.encode("utf-8").decode("unicode_escape")


def _exit_code(result: Any) -> int:
    if getattr(result, "cancelled", False):
        return EXIT_CRITICAL
    if getattr(result, "failed", None) or getattr(result, "invalid", None):
        return EXIT_FAILURES
    return EXIT_OK


async def _run_ping(credentials: Dict[str, str], config) -> int:
    from .orchestrator import BulkUploader

    async with BulkUploader(config=config, **credentials) as uploader:
        result = await uploader.ping()
    render_ping_result(result)
    return EXIT_OK if result.success else EXIT_FAILURES


async def _run_upload(
    source: Path,
    files: Optional[List[str]],
    credentials: Dict[str, str],
    config,
    error_options,
    params: Dict[str, Any],
    allowed_types: List[str],
) -> int:
    from .errors import ErrorLogError
    from .orchestrator import BulkUploader
    from .orchestrator.file_collector import FileCollector

    if files is None:
        try:
            files = FileCollector.collect_files(source, allowed_types)
        except OSError as exc:
            raise CLIError(f"could not list {source}: {exc}") from exc

    if not files:
        print("Nothing to upload.")
        return EXIT_OK

    display = BatchUploadProgressDisplay(total_files=len(files))
    async with BulkUploader(config=config, **credentials) as uploader:
        uploader.on_upload_success(display.on_upload_success)
        uploader.on_upload_error(display.on_upload_error)
        uploader.on_critical_error(display.on_critical_error)

        display.start()
        try:
            result = await uploader.upload(
                img_dir=str(source),
                specific_files=files,
                error_options=error_options,
                optional_params=params,
                allowed_file_types=allowed_types,
            )
        except ErrorLogError as exc:
            raise CLIError(str(exc)) from exc
        finally:
            display.stop()

    display.on_finish(result)
    return _exit_code(result)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bulk-up",
        description="Upload a directory of images to Cloudinary.",
    )
    parser.add_argument("source", nargs="?", type=Path, help="Directory holding the files to upload")
    parser.add_argument(
        "-f",
        "--files",
        nargs="+",
        default=None,
        help="Upload only these filenames from SOURCE",
    )
    parser.add_argument(
        "-g",
        "--folder",
        default=None,
        help="Destination folder on Cloudinary (example: /products)",
    )
    parser.add_argument(
        "-t",
        "--allowed-types",
        nargs="+",
        default=None,
        help="File extensions to upload (example: png jpg)",
    )
    parser.add_argument(
        "-e",
        "--error-file",
        default=None,
        help="Write failed uploads to this file",
    )
    parser.add_argument(
        "--overwrite-error-file",
        action="store_true",
        help="Overwrite the error file if it exists (default: fail)",
    )
    parser.add_argument(
        "--line-sep",
        default=None,
        help="Separator between error file entries (default: OS line separator)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds before a request is abandoned (default from UPLOADER_TIMEOUT or 120)",
    )
    parser.add_argument(
        "--max-parallel",
        type=int,
        default=None,
        help="Concurrent uploads, at most 10 (default from UPLOADER_MAX_PARALLEL or 10)",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace files already on Cloudinary instead of skipping them",
    )
    parser.add_argument(
        "-p",
        "--param",
        action="append",
        default=None,
        metavar="KEY=VALUE",
        help="Extra upload API parameter, repeatable (example: tags=a,b)",
    )
    parser.add_argument("--ping", action="store_true", help="Test the API connection and exit")
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
        version="bulk-up (from bulk_uploader)",
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
            return EXIT_FAILURES

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.source is None and not args.ping:
        parser.print_help()
        return EXIT_OK

    from .models import ErrorLogOptions, UploadConfig

    try:
        credentials = _read_credentials()
        params = _parse_params(args.param)
        config = UploadConfig.from_env(timeout=args.timeout, max_concurrency=args.max_parallel)
    except (CLIError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FAILURES

    if args.ping:
        try:
            return asyncio.run(_run_ping(credentials, config))
        except KeyboardInterrupt:
            print("Cancelled.", file=sys.stderr)
            return EXIT_INTERRUPTED

    source = Path(args.source).expanduser()
    if not source.is_dir():
        print(f"ERROR: source is not a directory: {source}", file=sys.stderr)
        return EXIT_FAILURES

    folder = _normalize_folder(args.folder)
    if folder:
        params["folder"] = folder
    if args.overwrite:
        params["overwrite"] = True

    line_sep = _decode_line_sep(args.line_sep)
    error_options = ErrorLogOptions(
        filename=args.error_file,
        overwrite=args.overwrite_error_file,
        **({"line_sep": line_sep} if line_sep is not None else {}),
    )
    allowed_types = list(args.allowed_types or [])

    render_configuration_summary(
        {
            "Source": str(source),
            "Files": ", ".join(args.files) if args.files else "(all)",
            "Cloud": credentials["cloud_name"],
            "Folder": folder or "(root)",
            "Allowed Types": ", ".join(allowed_types) if allowed_types else "(any)",
            "Error File": args.error_file or "-",
            "Overwrite": "yes" if args.overwrite else "no",
            "Concurrency": config.concurrency_cap,
            "Chunk Size": config.chunk_size,
            "Timeout": f"{config.timeout:g}s",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_upload(
                source=source,
                files=args.files,
                credentials=credentials,
                config=config,
                error_options=error_options,
                params=params,
                allowed_types=allowed_types,
            )
        )
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FAILURES
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return EXIT_INTERRUPTED


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()

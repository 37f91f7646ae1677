"""CLI entry point for bizregextract."""

from __future__ import annotations

import argparse
import json
import mimetypes
import sys
import uuid
from pathlib import Path

from bizregextract import __version__, logger
from bizregextract.backends.resend_email import ResendEmailSender
from bizregextract.dependencies import ensure_cli_dependencies_for_serve
from bizregextract.exceptions import PackageError
from bizregextract.logging import configure_logging
from bizregextract.pipeline import build_pipeline
from bizregextract.settings import get_settings


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser.

    Returns:
        argparse.ArgumentParser: The configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="bizregextract")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract registration numbers for product codes from a local image",
    )
    extract_parser.add_argument("--image", required=True, type=Path, dest="image_path")
    extract_parser.add_argument("--codes", required=True, help="Comma-separated product codes")
    extract_parser.add_argument("--output", type=Path, default=None, dest="output_path")
    extract_parser.add_argument("--no-email", action="store_true", dest="no_email")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload (development only)")

    subparsers.add_parser("check-model", help="Check the model provider connection")
    email_parser = subparsers.add_parser("check-email", help="Check the email provider connection")
    email_parser.add_argument("--send", action="store_true", help="Also send a test message")

    return parser


def _guess_content_type(path: Path) -> str | None:
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type


def _run_extract(args: argparse.Namespace) -> int:
    """Run the pipeline on a local image and write the export.

    Args:
        args (argparse.Namespace): Parsed CLI args.

    Returns:
        int: Exit code.
    """
    settings = get_settings()
    pipeline = build_pipeline(settings, send_email=not args.no_email)
    image_path: Path = args.image_path
    outcome = pipeline.process(
        args.codes,
        filename=image_path.name,
        content_type=_guess_content_type(image_path),
        data=image_path.read_bytes() if image_path.is_file() else None,
    )

    output_path: Path = args.output_path or Path("results") / outcome.export.filename
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(outcome.export.content, encoding="utf-8")
    logger.info("Export written", extra={"output_path": str(output_path)})

    summary = {
        "product_code": ",".join(outcome.product_codes),
        "items": [item.model_dump(exclude_none=True) for item in outcome.result.items],
        "total_found": outcome.result.total_found,
        "confidence": outcome.result.confidence,
        "provider": outcome.result.provider.to_str(),
        "emailed": outcome.emailed,
        "output_path": str(output_path),
    }
    sys.stdout.write(json.dumps(summary, ensure_ascii=False, indent=2) + "\n")
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    ensure_cli_dependencies_for_serve()
    import uvicorn

    uvicorn.run("bizregextract.api.app:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _run_check_model(_args: argparse.Namespace) -> int:
    report = build_pipeline(get_settings(), send_email=False).backend.check_connection()
    sys.stdout.write(json.dumps(report, indent=2) + "\n")
    return 0


def _run_check_email(args: argparse.Namespace) -> int:
    report = ResendEmailSender(get_settings()).check_connection(str(uuid.uuid4()), send_test=args.send)
    sys.stdout.write(json.dumps(report, indent=2) + "\n")
    return 0


_HANDLERS = {
    "extract": _run_extract,
    "serve": _run_serve,
    "check-model": _run_check_model,
    "check-email": _run_check_email,
}


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Args:
        argv (list[str] | None): Arguments, `sys.argv[1:]` by default.

    Returns:
        int: Exit code (0 for success, 1 for error, 130 when interrupted).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = _HANDLERS.get(args.command or "")
    if handler is None:
        parser.print_help()
        return 0

    try:
        settings = get_settings()
        configure_logging(settings=settings, force=True)
        return handler(args)
    except PackageError:
        logger.exception("Command failed", extra={"command": args.command})
        return 1
    except KeyboardInterrupt:
        logger.info("Command aborted by user")
        return 130
    except Exception:
        logger.exception("Unexpected error", extra={"command": args.command})
        return 1
    finally:
        if get_settings.cache_info().currsize:
            get_settings().close_http_client()


if __name__ == "__main__":
    raise SystemExit(main())

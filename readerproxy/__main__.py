"""CLI entry point: python -m readerproxy {serve,fetch} [options]"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from rich.console import Console
from rich.panel import Panel

from readerproxy import __version__, settings

logger = logging.getLogger(__name__)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="readerproxy",
        description=(
            "Fetch a web page and extract its main readable content.\n"
            "Serves a small JSON API or runs a single fetch from the shell."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL,
                        choices=_LOG_LEVELS, metavar="{DEBUG,INFO,WARNING,ERROR}",
                        help=f"Logging level (default: {settings.LOG_LEVEL})")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.HOST,
                       help=f"Interface to bind (default: {settings.HOST})")
    serve.add_argument("--port", type=int, default=settings.PORT, metavar="N",
                       help=f"Port to listen on (default: {settings.PORT})")

    fetch = sub.add_parser("fetch", help="Fetch one URL and print the JSON payload")
    fetch.add_argument("url", metavar="URL", help="Absolute http(s) URL to fetch")
    fetch.add_argument("--raw", action="store_true", default=False,
                       help="Return the page HTML unchanged (extractMain=false)")
    fetch.add_argument("--timeout-ms", type=int, default=settings.FETCH_TIMEOUT_MS, metavar="MS",
                       help=f"Whole-request timeout (default: {settings.FETCH_TIMEOUT_MS})")
    fetch.add_argument("--max-redirects", type=int, default=settings.MAX_REDIRECTS, metavar="N",
                       help=f"Redirects to follow (default: {settings.MAX_REDIRECTS})")
    return parser


def _print_banner(args: argparse.Namespace) -> None:
    console = Console(stderr=True)
    console.print(
        Panel.fit(
            f"[bold cyan]readerproxy[/bold cyan] {__version__}\n"
            f"Listening:      [green]http://{args.host}:{args.port}[/green]\n"
            f"Fetch timeout:  {settings.FETCH_TIMEOUT_MS} ms\n"
            f"Max redirects:  {settings.MAX_REDIRECTS}\n"
            f"Char threshold: {settings.CHAR_THRESHOLD}\n"
            f"CORS origins:   {', '.join(settings.CORS_ORIGINS)}",
            border_style="cyan",
        ),
    )


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    _print_banner(args)
    uvicorn.run(
        "readerproxy.api:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )
    return 0


def _fetch(args: argparse.Namespace) -> int:
    from readerproxy.assembler import error_response, process
    from readerproxy.errors import ReaderProxyError
    from readerproxy.items import FetchRequest

    try:
        request = FetchRequest(
            url=args.url,
            extract_main=not args.raw,
            timeout_ms=args.timeout_ms,
            max_redirects=args.max_redirects,
        )
        response = process(request)
    except ReaderProxyError as exc:
        _, payload = error_response(exc)
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 1
    print(json.dumps(response.model_dump(), ensure_ascii=False, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format=settings.LOG_FORMAT, stream=sys.stderr)

    if args.command == "serve":
        return _serve(args)
    return _fetch(args)


if __name__ == "__main__":
    sys.exit(main())

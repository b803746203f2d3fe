from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

from rich.console import Console

from ..config.config_manager import ScanClientConfig
from .display import format_progress_line, summarize_result
from .services.cancellation import CancellationToken
from .services.errors import (
    ScanApiClientError,
    ScanApiProtocolError,
    ScanApiRequestError,
    ScanCancelledError,
    ScanJobFailedError,
)
from .services.models import ScanRequest, StatusSnapshot
from .services.scan_orchestrator import run_scan, run_wcag_scan

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


def _parse_option(raw: str) -> tuple[str, Any]:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected key=value, got {raw!r}")
    try:
        parsed: Any = json.loads(value)
    except ValueError:
        parsed = value
    return key.strip(), parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sowhat-scan",
        description="Run an accessibility scan against the SoWhat scan API.",
    )
    parser.add_argument("--api-url", help="Base URL of the scan API (default: $SOWHAT_API_URL)")
    parser.add_argument("--poll-interval", type=float, help="Seconds between status polls (min 0.75)")
    parser.add_argument("--max-wait", type=float, help="Cancel the scan after this many seconds")
    parser.add_argument("--json", action="store_true", help="Print the final result as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    snapshot = sub.add_parser("snapshot", help="Capture one page and analyze the snapshot")
    snapshot.add_argument("url")
    snapshot.add_argument("--timeout-ms", type=int, default=8000, help="Capture timeout in ms")
    snapshot.add_argument(
        "--option",
        dest="options",
        action="append",
        type=_parse_option,
        default=[],
        metavar="KEY=VALUE",
        help="Engine option passed through unchanged (repeatable)",
    )

    wcag = sub.add_parser("wcag", help="Run a WCAG scan job")
    wcag.add_argument("url")
    wcag.add_argument("--mode", choices=["single", "crawl"], default="single")
    wcag.add_argument("--max-pages", type=int)
    wcag.add_argument("--timeout-ms", type=int)
    wcag.add_argument("--no-screenshots", action="store_true")
    return parser


def _wcag_payload(args: argparse.Namespace) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "startUrl": args.url,
        "mode": args.mode,
        "includeScreenshots": not args.no_screenshots,
    }
    if args.max_pages is not None:
        payload["maxPages"] = args.max_pages
    if args.timeout_ms is not None:
        payload["timeoutMs"] = args.timeout_ms
    return payload


def run_cancellable(
    runner: Callable[[CancellationToken], Any],
    token: CancellationToken,
    *,
    max_wait: Optional[float] = None,
) -> Any:
    """Run ``runner`` on a worker thread so Ctrl-C and ``max_wait`` can cancel it."""
    outcome: Dict[str, Any] = {}

    def _target() -> None:
        try:
            outcome["result"] = runner(token)
        except BaseException as exc:
            outcome["error"] = exc

    timer: Optional[threading.Timer] = None
    if max_wait is not None and max_wait > 0:
        timer = threading.Timer(max_wait, token.cancel)
        timer.daemon = True
        timer.start()

    worker = threading.Thread(target=_target, name="sowhat-scan", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        logger.info("Interrupted, cancelling scan")
        token.cancel()
        worker.join()
    finally:
        if timer is not None:
            timer.cancel()

    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    console = Console(stderr=True)
    out = Console()

    config = ScanClientConfig.from_env(api_url=args.api_url, poll_interval=args.poll_interval)
    token = CancellationToken()
    token.add_callback(lambda: console.print("[yellow]Cancelling scan…[/yellow]"))

    def _on_progress(snapshot: StatusSnapshot) -> None:
        console.print(format_progress_line(snapshot))

    if args.command == "snapshot":
        try:
            request = ScanRequest(
                url=args.url,
                timeout_ms=args.timeout_ms,
                options=dict(args.options),
            )
        except ValueError as exc:
            console.print(f"[red]Invalid request:[/red] {exc}")
            return EXIT_USAGE

        def runner(t: CancellationToken) -> Any:
            return run_scan(request, cancel_token=t, on_progress=_on_progress, config=config)

    else:
        payload = _wcag_payload(args)

        def runner(t: CancellationToken) -> Any:
            return run_wcag_scan(payload, cancel_token=t, on_progress=_on_progress, config=config)

    try:
        result = run_cancellable(runner, token, max_wait=args.max_wait)
    except ScanCancelledError:
        console.print("[yellow]Scan cancelled.[/yellow]")
        return EXIT_CANCELLED
    except ScanJobFailedError as exc:
        console.print(f"[red]Scan failed:[/red] {exc}")
        return EXIT_FAILED
    except ScanApiProtocolError as exc:
        console.print(f"[red]Unexpected response from scan API:[/red] {exc}")
        return EXIT_FAILED
    except ScanApiRequestError as exc:
        console.print(f"[red]Scan API request failed:[/red] {exc}")
        return EXIT_FAILED
    except ScanApiClientError as exc:
        console.print(f"[red]Scan error:[/red] {exc}")
        return EXIT_FAILED

    if args.json:
        out.print_json(json.dumps(result))
    else:
        lines: List[str] = summarize_result(result)
        for line in lines:
            out.print(line)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

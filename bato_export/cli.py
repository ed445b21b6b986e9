from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from .client import DEFAULT_BASE_URL, BatoClient, BatoError
from .fetcher import MAX_HISTORY_PAGES
from .pipeline import FORMATS, ExportOptions, parse_formats, run_convert, run_export


def print_status(msg: str) -> None:
    print(f"[bato] {msg}", flush=True)


def _add_output_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--formats", default="html", help=f"Comma list of output formats: {','.join(FORMATS)} (default html)")
    p.add_argument("--covers", action="store_true", help="Embed cover images (html, editable, pdf). Larger files, slower export")
    p.add_argument("--output-dir", type=Path, default=Path("."), help="Directory for the exported files (default: current directory)")
    p.add_argument("--display-name", help="Name used in titles and filenames (default: user id, or the name stored in the input file)")
    p.add_argument("--debug", action="store_true", help="Verbose diagnostics for API calls and cover downloads")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="bato-export", description="Export Bato.to reading lists with reading history to HTML, PDF, CSV, JSON and Excel.")
    sub = p.add_subparsers(dest="command", required=True)

    ex = sub.add_parser("export", help="Fetch lists and history from Bato and write the selected formats")
    ex.add_argument("--user-id", help="Bato user id (the number in /u/<id>; or env BATO_USER_ID)")
    ex.add_argument("--base-url", help=f"Site base URL (or env BATO_BASE_URL; default {DEFAULT_BASE_URL})")
    ex.add_argument("--cookie", help="Session cookie header value, needed for reading history (or env BATO_COOKIE)")
    ex.add_argument("--max-history-pages", type=int, default=MAX_HISTORY_PAGES, help=f"Stop reading history after this many pages (default {MAX_HISTORY_PAGES})")
    ex.add_argument("--request-timeout", type=float, default=20.0, help="Per-request timeout in seconds (default 20)")
    ex.add_argument("--insecure", action="store_true", help="Disable TLS certificate verification")
    _add_output_args(ex)

    cv = sub.add_parser("convert", help="Re-export a JSON export or a saved editable HTML file to other formats")
    cv.add_argument("input_file", type=Path, help="Path to a .json export or an _editable.html file")
    _add_output_args(cv)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        options = ExportOptions(
            formats=parse_formats(args.formats),
            covers=args.covers,
            output_dir=args.output_dir,
            debug=args.debug,
        )
    except BatoError as e:
        print_status(f"Error: {e}")
        return 2

    if args.command == "convert":
        try:
            result = run_convert(args.input_file, options, display_name=args.display_name, on_status=print_status)
        except Exception:
            # already reported as "Error: ..." by the pipeline
            return 2
        return 0 if result.lists else 1

    user_id = args.user_id or os.environ.get("BATO_USER_ID")
    if not user_id:
        print_status("Error: Bato user id required (flag --user-id or env BATO_USER_ID)")
        return 2
    options.max_history_pages = max(1, args.max_history_pages)
    client = BatoClient(
        base_url=args.base_url or os.environ.get("BATO_BASE_URL") or DEFAULT_BASE_URL,
        cookie=args.cookie or os.environ.get("BATO_COOKIE"),
        verify_tls=not args.insecure,
        request_timeout=args.request_timeout,
        debug=args.debug,
    )
    try:
        result = run_export(client, user_id, options, display_name=args.display_name, on_status=print_status)
    except Exception:
        # already reported as "Error: ..." by the pipeline
        return 2
    return 0 if result.lists else 1


if __name__ == "__main__":
    sys.exit(main())

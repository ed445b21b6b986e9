from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .client import BatoClient, BatoError
from .covers import enrich_covers
from .editable import extract_snapshot
from .fetcher import MAX_HISTORY_PAGES, fetch_all_lists, fetch_history_index
from .html_view import generate_editable_html, generate_html
from .merge import attach_history
from .models import CollectionList, HistoryIndex
from .pdf_layout import generate_pdf
from .printable import generate_printable_html
from .raw_json import generate_json, lists_from_document, load_lists
from .tabular import generate_csv, generate_xlsx

SOURCE_TAG = "bato"
FORMATS = ("html", "editable", "pdf", "printable", "csv", "json", "xlsx")
FILE_SUFFIXES = {
    "html": ".html",
    "editable": "_editable.html",
    "pdf": ".pdf",
    "printable": "_printable.html",
    "csv": ".csv",
    "json": ".json",
    "xlsx": ".xlsx",
}
# Formats that can show embedded cover images.
COVER_FORMATS = {"html", "editable", "pdf"}

StatusFn = Optional[Callable[[str], None]]


@dataclass
class ExportOptions:
    formats: Sequence[str] = ("html",)
    covers: bool = False
    output_dir: Path = Path(".")
    max_history_pages: int = MAX_HISTORY_PAGES
    debug: bool = False


@dataclass
class ExportResult:
    lists: List[CollectionList] = field(default_factory=list)
    paths: List[Path] = field(default_factory=list)


def parse_formats(value: Union[str, Sequence[str]]) -> List[str]:
    items = value.split(",") if isinstance(value, str) else list(value)
    out: List[str] = []
    for raw in items:
        fmt = raw.strip().lower()
        if not fmt:
            continue
        if fmt not in FORMATS:
            raise BatoError(f"Unknown format '{fmt}' (choose from: {', '.join(FORMATS)})")
        if fmt not in out:
            out.append(fmt)
    if not out:
        raise BatoError("Select a format.")
    return out


def safe_name(value: str) -> str:
    cleaned = re.sub(r'[\\/:*?"<>|\s]+', "_", value or "").strip("._")
    return cleaned or "User"


def build_filename(user: str, export_date: str, fmt: str) -> str:
    """``bato_export_<user>_<date>`` plus the suffix for ``fmt``."""
    return f"{SOURCE_TAG}_export_{safe_name(user)}_{export_date}{FILE_SUFFIXES[fmt]}"


def today_iso() -> str:
    return date.today().isoformat()


def render_format(
    fmt: str,
    lists: Sequence[CollectionList],
    display_name: str,
    export_date: str,
    *,
    covers: bool = False,
    now: Optional[datetime] = None,
) -> Union[str, bytes]:
    if fmt == "html":
        return generate_html(lists, display_name, export_date, now=now)
    if fmt == "editable":
        return generate_editable_html(lists, display_name, export_date)
    if fmt == "pdf":
        return generate_pdf(lists, display_name, export_date, include_covers=covers)
    if fmt == "printable":
        return generate_printable_html(lists, display_name, export_date, now=now)
    if fmt == "csv":
        return generate_csv(lists, export_date, now=now)
    if fmt == "json":
        return generate_json(lists, display_name, export_date)
    if fmt == "xlsx":
        return generate_xlsx(lists, export_date, now=now)
    raise BatoError(f"Unknown format '{fmt}'")


def write_artifacts(
    lists: Sequence[CollectionList],
    display_name: str,
    export_date: str,
    formats: Sequence[str],
    output_dir: Path,
    *,
    covers: bool = False,
    on_status: StatusFn = None,
    now: Optional[datetime] = None,
) -> List[Path]:
    """Render and write each format in turn. A failure stops before the remaining formats."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for fmt in formats:
        content = render_format(fmt, lists, display_name, export_date, covers=covers, now=now)
        path = output_dir / build_filename(display_name, export_date, fmt)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8", newline="")
        written.append(path)
        _report(on_status, f"Wrote {path}")
    return written


def _report(on_status: StatusFn, msg: str) -> None:
    if on_status:
        on_status(msg)


def collect(
    client: BatoClient,
    user_id: str,
    options: ExportOptions,
    *,
    on_status: StatusFn = None,
) -> List[CollectionList]:
    """Fetch, merge and (when requested) enrich. Empty result means no lists."""
    _report(on_status, "Connecting to Bato...")
    lists = fetch_all_lists(client, user_id, on_status=on_status)
    if not lists:
        return []
    history: HistoryIndex = {}
    if client.headers.get("Cookie"):
        _report(on_status, "Fetching reading history...")
        history = fetch_history_index(client, on_status=on_status, max_pages=options.max_history_pages)
    else:
        _report(on_status, "No session cookie; skipping reading history.")
    lists = attach_history(lists, history)
    if options.covers and COVER_FORMATS.intersection(options.formats):
        lists = enrich_covers(lists, client.get_bytes, on_status=on_status, debug=options.debug)
    return lists


def run_export(
    client: BatoClient,
    user_id: str,
    options: ExportOptions,
    *,
    display_name: Optional[str] = None,
    export_date: Optional[str] = None,
    on_status: StatusFn = None,
) -> ExportResult:
    """Full export run. Fatal errors are reported as ``Error: <message>`` and re-raised."""
    try:
        lists = collect(client, user_id, options, on_status=on_status)
        if not lists:
            _report(on_status, "No lists found.")
            return ExportResult()
        _report(on_status, "Generating files...")
        name = display_name or user_id
        paths = write_artifacts(
            lists,
            name,
            export_date or today_iso(),
            options.formats,
            options.output_dir,
            covers=options.covers,
            on_status=on_status,
        )
    except Exception as e:
        _report(on_status, f"Error: {e}")
        raise
    _report(on_status, f"Done! {len(paths)} file(s) in {Path(options.output_dir).resolve()}")
    return ExportResult(lists=lists, paths=paths)


def read_export_file(path: Path) -> Tuple[List[CollectionList], Dict[str, str]]:
    """Load lists from a JSON export or a saved editable HTML export."""
    text = Path(path).read_text(encoding="utf-8-sig")
    if Path(path).suffix.lower() in (".html", ".htm"):
        return lists_from_document(extract_snapshot(text))
    return load_lists(text)


def run_convert(
    input_path: Path,
    options: ExportOptions,
    *,
    display_name: Optional[str] = None,
    on_status: StatusFn = None,
) -> ExportResult:
    """Re-render a previous export into other formats without touching the network."""
    try:
        _report(on_status, f"Reading {input_path}...")
        lists, meta = read_export_file(input_path)
        if not lists:
            _report(on_status, "No lists found.")
            return ExportResult()
        name = display_name or meta.get("user") or "User"
        export_date = meta.get("exported") or today_iso()
        _report(on_status, "Generating files...")
        paths = write_artifacts(
            lists,
            name,
            export_date,
            options.formats,
            options.output_dir,
            covers=options.covers,
            on_status=on_status,
        )
    except Exception as e:
        _report(on_status, f"Error: {e}")
        raise
    _report(on_status, f"Done! {len(paths)} file(s) in {Path(options.output_dir).resolve()}")
    return ExportResult(lists=lists, paths=paths)

from __future__ import annotations

import html
from datetime import datetime
from typing import List, Optional, Sequence

from .formatting import format_lang, format_score, status_class, time_ago
from .models import CollectionList, ComicEntry

GENRES_SHOWN = 4

STYLE = """
    body { font-family: Roboto, Helvetica, Arial, sans-serif; background: #fff; color: #000; margin: 0; padding: 20px; font-size: 10pt; }
    h1 { font-size: 18pt; margin-bottom: 5px; border-bottom: 2px solid #000; padding-bottom: 10px; }
    .subtitle { font-size: 10pt; color: #555; margin-bottom: 30px; }
    .list-section { margin-bottom: 30px; }
    .list-title { font-size: 14pt; font-weight: bold; background: #eee; padding: 5px 10px; border-top: 2px solid #000; margin-bottom: 10px; display: flex; justify-content: space-between; }
    .list-count { font-size: 10pt; font-weight: normal; }
    table { width: 100%; border-collapse: collapse; margin-bottom: 20px; }
    th { text-align: left; border-bottom: 1px solid #000; padding: 5px; font-size: 9pt; text-transform: uppercase; }
    td { border-bottom: 1px solid #ddd; padding: 8px 5px; vertical-align: top; }
    tr { page-break-inside: avoid; }
    .col-title { width: 45%; }
    .col-meta { width: 15%; }
    .col-read { width: 20%; }
    .col-latest { width: 20%; }
    .title-text { font-weight: bold; font-size: 11pt; display: block; margin-bottom: 2px; }
    .author-text { font-style: italic; font-size: 9pt; color: #444; }
    .genre-text { font-size: 8pt; color: #666; margin-top: 2px; }
    .status-ongoing { color: #2e7d32; font-weight: bold; font-size: 8pt; }
    .status-completed { color: #1565c0; font-weight: bold; font-size: 8pt; }
    .score { font-weight: bold; }
    .read-chap { font-weight: bold; display: block; }
    .date-sub { font-size: 8pt; color: #666; }
    .muted { color: #999; }
    @media print {
        @page { margin: 1cm; size: A4; }
        body { -webkit-print-color-adjust: exact; }
        a { text-decoration: none; color: #000; }
    }
"""


def _esc(value: object) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def _row(e: ComicEntry, now: Optional[datetime]) -> str:
    if e.history:
        read = (
            f'<span class="read-chap">{_esc(e.history.chapter_label)}</span>'
            f'<span class="date-sub">{_esc(time_ago(e.history.read_timestamp, now=now))}</span>'
        )
    else:
        read = '<span class="muted">-</span>'
    genres = ", ".join(e.genres[:GENRES_SHOWN])
    return (
        "<tr>"
        f'<td><span class="title-text">{_esc(e.title)}</span>'
        f'<span class="author-text">{_esc(", ".join(e.authors))}</span>'
        f'<div class="genre-text">{_esc(format_lang(e.origin_language))} • {_esc(genres)}</div></td>'
        f'<td><div class="{status_class(e.status)}">{_esc(e.status or "Unknown")}</div>'
        f'<div class="score">★ {format_score(e.average_score)}</div></td>'
        f"<td>{read}</td>"
        f'<td><span class="read-chap">{_esc(e.latest_chapter_label or "-")}</span>'
        f'<div class="date-sub">{_esc(time_ago(e.last_updated_timestamp, now=now))}</div></td>'
        "</tr>"
    )


def generate_printable_html(
    lists: Sequence[CollectionList],
    display_name: str,
    export_date: str,
    now: Optional[datetime] = None,
) -> str:
    """Print-friendly HTML, one table per non-empty list; opens the print dialog on load."""
    parts: List[str] = [
        "<!DOCTYPE html>\n<html lang=\"en\">\n<head>\n<meta charset=\"UTF-8\">\n"
        f"<title>BatoList - {_esc(display_name)}</title>\n<style>{STYLE}</style>\n</head>\n<body>\n"
        f"<h1>{_esc(display_name)}'s Bato Collection</h1>\n"
        f'<div class="subtitle">Generated on {_esc(export_date)} • Total Lists: {len(lists)}</div>\n'
    ]
    for lst in lists:
        if not lst.entries:
            continue
        parts.append(
            '<div class="list-section">'
            f'<div class="list-title"><span>{_esc(lst.name)}</span>'
            f'<span class="list-count">{len(lst.entries)} items</span></div>'
            "<table><thead><tr>"
            '<th class="col-title">Comic Info</th><th class="col-meta">Status / Score</th>'
            '<th class="col-read">Last Read</th><th class="col-latest">Latest (As of Export)</th>'
            "</tr></thead><tbody>"
        )
        parts.extend(_row(e, now) for e in lst.entries)
        parts.append("</tbody></table></div>\n")
    parts.append("<script>window.onload = function() { window.print(); }</script>\n</body>\n</html>\n")
    return "".join(parts)

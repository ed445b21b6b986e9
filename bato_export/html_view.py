from __future__ import annotations

import html
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .editable import SNAPSHOT_ELEMENT_ID, EditableDataset, embed_snapshot
from .formatting import DEMOGRAPHIC_TAGS, WARNING_TAGS, format_lang, format_score, status_class, tag_class, time_ago
from .models import CollectionList, ComicEntry

STATIC_DIR = Path(__file__).with_name("static")
TIERS_ELEMENT_ID = "bato-tag-tiers"

STYLE = """
    :root { --b1: #161616; --b2: #1c1c1c; --b3: #252525; --bc: #eee; --p: #00bcd4; --su: #4ade80; --wa: #facc15; --er: #f87171; }
    body { background: var(--b1); color: var(--bc); font-family: -apple-system, "Segoe UI", sans-serif; margin: 0; padding: 20px; }
    a { color: inherit; text-decoration: none; }
    .container { max-width: 1000px; margin: 0 auto; }
    .header-main { border-bottom: 1px solid #333; padding-bottom: 15px; margin-bottom: 20px; }
    h1 { color: var(--p); margin: 0; font-size: 24px; }
    .sub { color: #777; font-size: 12px; }
    .toolbar { display: flex; flex-wrap: wrap; gap: 8px; margin-bottom: 24px; }
    .toolbar input, .toolbar select, .toolbar button { background: var(--b2); color: var(--bc); border: 1px solid #333; border-radius: 4px; padding: 6px 8px; }
    .list-block { background: var(--b2); border: 1px solid #333; border-radius: 8px; margin-bottom: 32px; overflow: hidden; }
    .list-head { background: #222; padding: 12px 15px; border-bottom: 1px solid #333; display: flex; justify-content: space-between; align-items: center; }
    .list-name { font-size: 18px; font-weight: bold; color: #fff; }
    .list-meta { font-size: 12px; color: #888; background: #111; padding: 2px 8px; border-radius: 4px; text-transform: uppercase; }
    .item { display: flex; padding: 12px; border-bottom: 1px solid #2a2a2a; }
    .item:hover { background: var(--b3); }
    .item.hidden { display: none; }
    .cover-box { width: 90px; flex-shrink: 0; margin-right: 15px; border-radius: 4px; overflow: hidden; background: #000; aspect-ratio: 2/3; }
    .cover-img { width: 100%; height: 100%; object-fit: cover; }
    .no-image { display: flex; justify-content: center; align-items: center; height: 100%; color: #444; font-size: 10px; }
    .details { flex-grow: 1; display: flex; flex-direction: column; overflow: hidden; }
    .comic-title { font-weight: bold; font-size: 16px; color: #fff; margin-bottom: 4px; }
    .stats-row { display: flex; gap: 10px; font-size: 13px; color: #aaa; margin-bottom: 6px; }
    .star-val { color: var(--wa); font-weight: bold; }
    .status-ongoing { color: var(--su); }
    .status-completed { color: #60a5fa; }
    .meta-row { font-size: 12px; line-height: 1.4; margin-bottom: 6px; }
    .lang-tag { font-weight: bold; color: #fff; margin-right: 6px; }
    .tags { display: flex; flex-wrap: wrap; gap: 4px; margin-bottom: 6px; }
    .tag { font-size: 11px; padding: 1px 6px; border-radius: 3px; background: #2a2a2a; color: #bbb; }
    .tag.warning { background: #3b1515; color: var(--er); }
    .tag.demographic { background: #12303a; color: var(--p); }
    .chapter-row { margin-top: auto; font-size: 13px; border-top: 1px dashed #333; padding-top: 6px; display: grid; grid-template-columns: 1fr 1fr; gap: 10px; }
    .chap-info { display: flex; flex-direction: column; }
    .chap-label { font-size: 11px; color: #666; text-transform: uppercase; font-weight: bold; }
    .chap-val { color: var(--p); }
    .history-box .chap-val { color: var(--wa); }
    .chap-date { font-style: italic; color: #666; font-size: 11px; }
    .item-actions { display: flex; flex-direction: column; gap: 4px; margin-left: 10px; }
    .item-actions button { background: #222; color: #ccc; border: 1px solid #333; border-radius: 3px; cursor: pointer; font-size: 11px; }
    dialog { background: var(--b2); color: var(--bc); border: 1px solid #333; border-radius: 8px; }
    dialog label { display: block; font-size: 12px; margin-top: 8px; }
    dialog input { width: 100%; box-sizing: border-box; }
"""

TOOLBAR = """
    <div class="toolbar">
        <input id="f-text" type="search" placeholder="Search title or author">
        <select id="f-status"><option value="">All statuses</option></select>
        <select id="f-lang"><option value="">All languages</option></select>
        <select id="f-tag"><option value="">All tags</option></select>
        <select id="f-sort">
            <option value="">Original order</option>
            <option value="title">Title</option>
            <option value="score">Score</option>
            <option value="chapters">Chapters</option>
            <option value="read">Last read</option>
            <option value="updated">Last updated</option>
        </select>
        <button id="f-dir" type="button" data-dir="desc">Desc</button>
    </div>"""


def load_static(name: str) -> str:
    return (STATIC_DIR / name).read_text(encoding="utf-8")


def tag_tiers() -> Dict[str, List[str]]:
    """Normalized tag names per styling tier, for pages that render tags in the browser."""
    return {"warning": sorted(WARNING_TAGS), "demographic": sorted(DEMOGRAPHIC_TAGS)}


def _esc(value: object) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def _num_attr(value: Optional[float]) -> str:
    return "" if value is None else str(value)


def cover_source(entry: ComicEntry) -> Optional[str]:
    return entry.cover_data or entry.cover_url


def render_item(entry: ComicEntry, export_date: str, now: Optional[datetime] = None) -> str:
    hist = entry.history
    status = entry.status or "Unknown"
    src = cover_source(entry)
    if src:
        img = f'<img class="cover-img" src="{_esc(src)}" loading="lazy" alt="">'
    else:
        img = '<div class="no-image">No Image</div>'
    if hist:
        history_html = (
            f'<span class="chap-val">{_esc(hist.chapter_label)}</span>'
            f'<span class="chap-date">{_esc(time_ago(hist.read_timestamp, now=now))}</span>'
        )
    else:
        history_html = '<span class="chap-val">-</span>'
    tags = "".join(f'<span class="tag {tag_class(g)}">{_esc(g)}</span>' for g in entry.genres)
    attrs = {
        "data-id": entry.id,
        "data-title": entry.title,
        "data-authors": ", ".join(entry.authors),
        "data-status": entry.status or "",
        "data-lang": entry.origin_language or "",
        "data-tags": "|".join(entry.genres),
        "data-score": _num_attr(entry.average_score),
        "data-chapters": _num_attr(entry.latest_chapter_count),
        "data-read": _num_attr(hist.read_timestamp if hist else None),
        "data-updated": _num_attr(entry.last_updated_timestamp),
    }
    attr_text = " ".join(f'{k}="{_esc(v)}"' for k, v in attrs.items())
    return (
        f'<div class="item" {attr_text}>'
        f'<div class="cover-box">{img}</div>'
        '<div class="details">'
        f'<div class="comic-title">{_esc(entry.title)}</div>'
        f'<div class="stats-row"><span>★ <span class="star-val">{format_score(entry.average_score)}</span></span>'
        f'<span class="{status_class(entry.status)}">{_esc(status)}</span></div>'
        f'<div class="meta-row"><span class="lang-tag">{_esc(format_lang(entry.origin_language))}</span>'
        f'<span>{_esc(", ".join(entry.authors))}</span></div>'
        f'<div class="tags">{tags}</div>'
        '<div class="chapter-row">'
        f'<div class="chap-info history-box"><span class="chap-label">Last Read</span>{history_html}</div>'
        f'<div class="chap-info"><span class="chap-label">Latest Release (As of {_esc(export_date)})</span>'
        f'<span class="chap-val">{_esc(entry.latest_chapter_label or "Unknown")}</span>'
        f'<span class="chap-date">{_esc(time_ago(entry.last_updated_timestamp, now=now))}</span></div>'
        '</div></div></div>'
    )


def render_list(lst: CollectionList, export_date: str, now: Optional[datetime] = None) -> str:
    privacy = "Public" if lst.is_public else "Private"
    parts: List[str] = [
        f'<div class="list-block" data-list-id="{_esc(lst.id)}">'
        f'<div class="list-head"><span class="list-name">{_esc(lst.name)}</span>'
        f'<span class="list-meta">{privacy} • {len(lst.entries)} items</span></div>'
    ]
    parts.extend(render_item(e, export_date, now=now) for e in lst.entries)
    parts.append("</div>")
    return "".join(parts)


def _page(title: str, heading: str, sub: str, body: str, scripts: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{_esc(title)}</title>
<style>{STYLE}</style>
</head>
<body>
<div class="container">
    <div class="header-main">
        <h1>{_esc(heading)}</h1>
        <div class="sub">{_esc(sub)}</div>
    </div>{TOOLBAR}
    <div id="lists">{body}</div>
</div>
{scripts}
</body>
</html>
"""


def generate_html(
    lists: Sequence[CollectionList],
    display_name: str,
    export_date: str,
    now: Optional[datetime] = None,
) -> str:
    """Self-contained read-only view with client-side filter and sort."""
    body = "".join(render_list(lst, export_date, now=now) for lst in lists if lst.entries)
    scripts = f"<script>{load_static('view.js')}</script>"
    return _page(
        f"{display_name}'s Bato Lists",
        f"{display_name}'s Bato Collection",
        f"Exported: {export_date}",
        body,
        scripts,
    )


def generate_editable_html(
    lists: Sequence[CollectionList],
    display_name: str,
    export_date: str,
) -> str:
    """Editor document: embedded JSON snapshot plus the client app that renders and edits it.

    Empty lists stay in the snapshot so entries can be added to them.
    """
    dataset = EditableDataset.from_lists(lists, display_name, export_date)
    scripts = (
        f'<script type="application/json" id="{SNAPSHOT_ELEMENT_ID}">{embed_snapshot(dataset.to_snapshot())}</script>\n'
        f'<script type="application/json" id="{TIERS_ELEMENT_ID}">{embed_snapshot(tag_tiers())}</script>\n'
        f"<script>{load_static('view.js')}</script>\n"
        f"<script>{load_static('editable.js')}</script>"
    )
    return _page(
        f"{display_name}'s Bato Lists (editable)",
        f"{display_name}'s Bato Collection",
        f"Exported: {export_date}",
        "",
        scripts,
    )

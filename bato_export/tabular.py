from __future__ import annotations

import io
from datetime import datetime
from typing import List, Optional, Sequence

import pandas as pd

from .formatting import format_lang, iso_date, time_ago
from .models import CollectionList, flatten

BOM = "\ufeff"
SITE_URL = "https://bato.to"
SHEET_NAME = "Collection"


def csv_columns(export_date: str) -> List[str]:
    return [
        "List Name", "Privacy", "Comic Name", "Lang", "Score", "Status",
        "Last Read Ch", "Last Read Date", f"Latest Ch (As of {export_date})",
        "Updated", "Genres", "Bato URL",
    ]


def build_frame(lists: Sequence[CollectionList], export_date: str, now: Optional[datetime] = None) -> pd.DataFrame:
    """One row per entry flattened across lists, all cells as text."""
    columns = csv_columns(export_date)
    rows = []
    for lst, e in flatten(lists):
        hist = e.history
        rows.append([
            lst.name,
            "Public" if lst.is_public else "Private",
            e.title,
            format_lang(e.origin_language, flag=False),
            f"{e.average_score:g}" if e.average_score is not None else "",
            e.status or "",
            hist.chapter_label if hist else "-",
            iso_date(hist.read_timestamp) if hist else "-",
            str(e.latest_chapter_count) if e.latest_chapter_count is not None else "",
            time_ago(e.last_updated_timestamp, now=now),
            ", ".join(e.genres),
            SITE_URL + e.source_path,
        ])
    return pd.DataFrame(rows, columns=columns, dtype=object)


def generate_csv(lists: Sequence[CollectionList], export_date: str, now: Optional[datetime] = None) -> str:
    df = build_frame(lists, export_date, now=now)
    # Fields are quoted only when they need it; embedded quotes are doubled.
    body = df.to_csv(index=False, lineterminator="\n")
    return BOM + body


def generate_xlsx(lists: Sequence[CollectionList], export_date: str, now: Optional[datetime] = None) -> bytes:
    """Same rows as the CSV export, as an Excel workbook."""
    df = build_frame(lists, export_date, now=now)
    buf = io.BytesIO()
    df.to_excel(buf, index=False, sheet_name=SHEET_NAME, engine="openpyxl")
    return buf.getvalue()

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from .models import ComicEntry

LANG_LABELS = {
    "ko": ("🇰🇷", "Manhwa"),
    "ja": ("🇯🇵", "Manga"),
    "zh": ("🇨🇳", "Manhua"),
    "en": ("🇬🇧", "Comic"),
}
DEFAULT_LANG = ("🏳️", "Comic")

# Styling tiers for tags; classification never filters entries.
WARNING_TAGS = {
    "gore", "bloody", "violence", "sexual violence", "ecchi", "smut", "adult",
    "mature", "hentai", "incest", "netorare", "ntr", "non human", "harem",
}
DEMOGRAPHIC_TAGS = {"shounen", "shoujo", "seinen", "josei", "kodomo"}

_CHAPTER_NUM_RE = re.compile(r"(\d+(?:\.\d+)?)")


def to_datetime(ts_ms: Optional[int]) -> Optional[datetime]:
    if ts_ms is None:
        return None
    try:
        return datetime.fromtimestamp(int(ts_ms) / 1000.0, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def iso_date(ts_ms: Optional[int]) -> str:
    dt = to_datetime(ts_ms)
    return dt.strftime("%Y-%m-%d") if dt else "-"


def time_ago(ts_ms: Optional[int], now: Optional[datetime] = None) -> str:
    """Coarse relative time like ``3d ago``; ``Unknown`` without a timestamp."""
    dt = to_datetime(ts_ms)
    if dt is None:
        return "Unknown"
    now = now or datetime.now(timezone.utc)
    seconds = (now - dt).total_seconds()
    for size, suffix in ((31536000, "y"), (2592000, "mo"), (86400, "d"), (3600, "h"), (60, "m")):
        interval = seconds / size
        if interval > 1:
            return f"{int(interval)}{suffix} ago"
    return "Just now"


def format_lang(code: Optional[str], flag: bool = True) -> str:
    emoji, label = LANG_LABELS.get((code or "").lower(), DEFAULT_LANG)
    return f"{emoji} {label}" if flag else label


def format_score(score: Optional[float]) -> str:
    return f"{score:.1f}" if score is not None else "-"


def parse_chapter_number(label: Optional[str]) -> Optional[float]:
    """Chapter number from a free-text label (``"Vol.2 Chapter 12.5"`` -> 12.5).

    The number after a ``ch``/``chapter``/``ep``/``episode`` marker wins; otherwise
    the first number in the label.
    """
    if not label:
        return None
    m = re.search(r"(?:ch(?:apter)?|ep(?:isode)?)\.?\s*(\d+(?:\.\d+)?)", label, flags=re.I)
    if not m:
        m = _CHAPTER_NUM_RE.search(label)
    if not m:
        return None
    try:
        return float(m.group(1))
    except ValueError:
        return None


def _fmt_number(n: float) -> str:
    return str(int(n)) if n == int(n) else str(n)


def progress_text(entry: ComicEntry) -> str:
    """``<read> / <latest>`` with ``?`` for an unparseable side and ``-`` when neither is known."""
    read_label = entry.history.chapter_label if entry.history else None
    latest = entry.latest_chapter_count
    if latest is None:
        latest = parse_chapter_number(entry.latest_chapter_label)
    if read_label is None and latest is None:
        return "-"
    read_num = parse_chapter_number(read_label)
    read_txt = _fmt_number(read_num) if read_num is not None else "?"
    latest_txt = _fmt_number(float(latest)) if latest is not None else "?"
    return f"{read_txt} / {latest_txt}"


def normalize_tag(tag: str) -> str:
    t = re.sub(r"\(.*?\)", " ", tag or "").lower()
    t = re.sub(r"[_\-]+", " ", t)
    return " ".join(t.split())


def tag_class(tag: str) -> str:
    """CSS tier for a tag: ``warning``, ``demographic`` or ``plain``."""
    t = normalize_tag(tag)
    if t in WARNING_TAGS:
        return "warning"
    if t in DEMOGRAPHIC_TAGS:
        return "demographic"
    return "plain"


def status_class(status: Optional[str]) -> str:
    return "status-completed" if (status or "").lower() == "completed" else "status-ongoing"

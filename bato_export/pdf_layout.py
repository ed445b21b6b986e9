from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .client import BatoError
from .formatting import format_lang, format_score, iso_date, progress_text
from .models import CollectionList, ComicEntry, flatten

# Geometry in points. A4 portrait, 15 mm margins.
MM = 72.0 / 25.4
PAGE_WIDTH, PAGE_HEIGHT = 210 * MM, 297 * MM
MARGIN = 15 * MM

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
TEXT_SIZE = 8
SMALL_SIZE = 7
LEADING = 10
CELL_PAD = 4

BASE_ROW_HEIGHT = 14
COVER_ROW_HEIGHT = 60
COVER_W, COVER_H = 34, 51

TITLE_SIZE = 16
STAT_SIZE = 9
HEADER_BLOCK_HEIGHT = 40
COLUMN_HEADER_HEIGHT = 16
FOOTER_HEIGHT = 16
BODY_BOTTOM = MARGIN + FOOTER_HEIGHT
ELLIPSIS = "…"

Measure = Callable[[str, str, float], float]


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    width: float


@dataclass
class RowPlan:
    entry: ComicEntry
    list_name: str
    title_lines: List[str]
    meta_lines: List[str]
    tag_lines: List[str]
    height: float
    top: float = 0.0
    clipped: bool = False


@dataclass
class PagePlan:
    number: int
    body_top: float
    has_header_block: bool
    rows: List[RowPlan] = field(default_factory=list)


@dataclass
class LayoutPlan:
    columns: List[Column]
    pages: List[PagePlan]
    include_covers: bool
    display_name: str
    export_date: str
    list_count: int
    entry_count: int


def _require_reportlab():
    try:
        from reportlab.pdfbase import pdfmetrics
        from reportlab.pdfgen import canvas
    except ImportError as e:
        raise BatoError("PDF export requires reportlab (pip install reportlab)") from e
    return pdfmetrics, canvas


def default_measure() -> Measure:
    pdfmetrics, _canvas = _require_reportlab()
    return pdfmetrics.stringWidth


def build_columns(include_covers: bool) -> List[Column]:
    usable = PAGE_WIDTH - 2 * MARGIN
    fixed = [
        Column("tags", "Tags", 130),
        Column("status", "Status / Score", 66),
        Column("progress", "Progress", 56),
        Column("updated", "Updated", 56),
    ]
    cover = [Column("cover", "Cover", COVER_W + 2 * CELL_PAD)] if include_covers else []
    title_w = usable - sum(c.width for c in fixed) - sum(c.width for c in cover)
    return cover + [Column("title", "Title", title_w)] + fixed


def _split_long_word(word: str, width: float, font: str, size: float, measure: Measure) -> List[str]:
    pieces: List[str] = []
    cur = ""
    for ch in word:
        if cur and measure(cur + ch, font, size) > width:
            pieces.append(cur)
            cur = ch
        else:
            cur += ch
    if cur:
        pieces.append(cur)
    return pieces


def wrap_text(text: str, width: float, font: str, size: float, measure: Measure) -> List[str]:
    """Greedy word wrap by rendered width. Words wider than ``width`` are split."""
    lines: List[str] = []
    cur = ""
    for word in (text or "").split():
        if measure(word, font, size) > width:
            if cur:
                lines.append(cur)
                cur = ""
            parts = _split_long_word(word, width, font, size, measure)
            lines.extend(parts[:-1])
            cur = parts[-1]
            continue
        candidate = f"{cur} {word}" if cur else word
        if measure(candidate, font, size) <= width:
            cur = candidate
        else:
            lines.append(cur)
            cur = word
    if cur:
        lines.append(cur)
    return lines


def plan_row(entry: ComicEntry, list_name: str, columns: Sequence[Column], include_covers: bool, measure: Measure) -> RowPlan:
    widths = {c.key: c.width - 2 * CELL_PAD for c in columns}
    title_lines = wrap_text(entry.title or "-", widths["title"], FONT_BOLD, TEXT_SIZE, measure) or ["-"]
    meta = list_name
    if entry.authors:
        meta = f"{meta} • {', '.join(entry.authors)}" if meta else ", ".join(entry.authors)
    meta_lines = wrap_text(meta, widths["title"], FONT, SMALL_SIZE, measure)
    tag_lines = wrap_text(", ".join(entry.genres), widths["tags"], FONT, SMALL_SIZE, measure)
    # status/score always takes two lines
    line_count = max(len(title_lines) + len(meta_lines), len(tag_lines), 2)
    base = COVER_ROW_HEIGHT if include_covers else BASE_ROW_HEIGHT
    height = max(line_count * LEADING + 2 * CELL_PAD, base)
    return RowPlan(entry, list_name, title_lines, meta_lines, tag_lines, float(height))


def _clip_lines(lines: List[str], max_lines: int) -> List[str]:
    if len(lines) <= max_lines:
        return lines
    return lines[: max_lines - 1] + [ELLIPSIS]


def clip_row(row: RowPlan, available: float) -> None:
    """Cut a row down to ``available`` height, ending each cut column with an ellipsis line."""
    max_lines = max(int((available - 2 * CELL_PAD) // LEADING), 2)
    if len(row.title_lines) + len(row.meta_lines) > max_lines:
        if len(row.title_lines) < max_lines:
            row.meta_lines = _clip_lines(row.meta_lines, max_lines - len(row.title_lines))
        else:
            row.title_lines = row.title_lines[: max_lines - 1] + [ELLIPSIS]
            row.meta_lines = []
    row.tag_lines = _clip_lines(row.tag_lines, max_lines)
    row.height = float(max_lines * LEADING + 2 * CELL_PAD)
    row.clipped = True


def _body_top(first_page: bool) -> float:
    top = PAGE_HEIGHT - MARGIN - COLUMN_HEADER_HEIGHT
    return top - HEADER_BLOCK_HEIGHT if first_page else top


def plan_layout(
    lists: Sequence[CollectionList],
    display_name: str,
    export_date: str,
    *,
    include_covers: bool = False,
    measure: Optional[Measure] = None,
) -> LayoutPlan:
    """Compute columns, wrapped lines, row heights and page breaks without drawing.

    Rows are never split. A row that does not fit in the space left on the
    current page starts a new page; a row taller than an empty page is placed
    alone on its own page and clipped to it.
    """
    measure = measure or default_measure()
    columns = build_columns(include_covers)
    pages = [PagePlan(number=1, body_top=_body_top(True), has_header_block=True)]
    y = pages[0].body_top
    pairs = flatten(lists)
    for lst, entry in pairs:
        row = plan_row(entry, lst.name, columns, include_covers, measure)
        page = pages[-1]
        if page.rows and y - row.height < BODY_BOTTOM:
            page = PagePlan(number=len(pages) + 1, body_top=_body_top(False), has_header_block=False)
            pages.append(page)
            y = page.body_top
        if row.height > y - BODY_BOTTOM:
            clip_row(row, y - BODY_BOTTOM)
        row.top = y
        page.rows.append(row)
        y -= row.height
    return LayoutPlan(
        columns=columns,
        pages=pages,
        include_covers=include_covers,
        display_name=display_name,
        export_date=export_date,
        list_count=sum(1 for lst in lists if lst.entries),
        entry_count=len(pairs),
    )


def _column_x(columns: Sequence[Column]) -> List[Tuple[Column, float]]:
    out = []
    x = MARGIN
    for c in columns:
        out.append((c, x))
        x += c.width
    return out


def _decode_data_url(data_url: Optional[str]) -> Optional[bytes]:
    if not data_url or not data_url.startswith("data:") or "," not in data_url:
        return None
    try:
        return base64.b64decode(data_url.split(",", 1)[1])
    except (binascii.Error, ValueError):
        return None


def _numbered_canvas_class(canvas_module):
    class NumberedCanvas(canvas_module.Canvas):
        """Buffers page states so the footer can show the final page count."""

        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self._saved_page_states = []

        def showPage(self):
            self._saved_page_states.append(dict(self.__dict__))
            self._startPage()

        def save(self):
            total = len(self._saved_page_states)
            for state in self._saved_page_states:
                self.__dict__.update(state)
                self.draw_footer(total)
                canvas_module.Canvas.showPage(self)
            canvas_module.Canvas.save(self)

        def draw_footer(self, total: int) -> None:
            self.setFont(FONT, SMALL_SIZE)
            self.setFillGray(0.4)
            self.drawCentredString(PAGE_WIDTH / 2, MARGIN, f"Page {self.getPageNumber()} of {total}")

    return NumberedCanvas


def _draw_header_block(c, plan: LayoutPlan) -> None:
    top = PAGE_HEIGHT - MARGIN
    c.setFillGray(0)
    c.setFont(FONT_BOLD, TITLE_SIZE)
    c.drawString(MARGIN, top - TITLE_SIZE, f"{plan.display_name}'s Bato Collection")
    c.setFont(FONT, STAT_SIZE)
    c.setFillGray(0.35)
    c.drawString(
        MARGIN,
        top - TITLE_SIZE - STAT_SIZE - 8,
        f"Generated on {plan.export_date} • Lists: {plan.list_count} • Comics: {plan.entry_count}",
    )


def _draw_column_header(c, plan: LayoutPlan, page: PagePlan) -> None:
    y = page.body_top
    c.setFillGray(0.92)
    c.rect(MARGIN, y, PAGE_WIDTH - 2 * MARGIN, COLUMN_HEADER_HEIGHT, stroke=0, fill=1)
    c.setFillGray(0)
    c.setFont(FONT_BOLD, SMALL_SIZE)
    for col, x in _column_x(plan.columns):
        c.drawString(x + CELL_PAD, y + 5, col.label.upper())


def _draw_lines(c, lines: Sequence[str], x: float, y: float, font: str, size: float) -> float:
    c.setFont(font, size)
    for line in lines:
        c.drawString(x, y, line)
        y -= LEADING
    return y


def _draw_cover(c, row: RowPlan, x: float, top: float, image_reader) -> None:
    box_y = top - CELL_PAD - COVER_H
    data = _decode_data_url(row.entry.cover_data)
    if data:
        try:
            c.drawImage(image_reader(io.BytesIO(data)), x, box_y, COVER_W, COVER_H, preserveAspectRatio=True, anchor="c")
            return
        except Exception:  # unreadable image: placeholder
            pass
    c.setStrokeGray(0.8)
    c.rect(x, box_y, COVER_W, COVER_H, stroke=1, fill=0)
    c.setFont(FONT, 5)
    c.setFillGray(0.6)
    c.drawCentredString(x + COVER_W / 2, box_y + COVER_H / 2, "No Image")


def _draw_row(c, plan: LayoutPlan, row: RowPlan, image_reader) -> None:
    e = row.entry
    first_baseline = row.top - CELL_PAD - TEXT_SIZE
    for col, x in _column_x(plan.columns):
        tx = x + CELL_PAD
        c.setFillGray(0)
        if col.key == "cover":
            _draw_cover(c, row, tx, row.top, image_reader)
        elif col.key == "title":
            y = _draw_lines(c, row.title_lines, tx, first_baseline, FONT_BOLD, TEXT_SIZE)
            c.setFillGray(0.4)
            _draw_lines(c, row.meta_lines, tx, y, FONT, SMALL_SIZE)
        elif col.key == "tags":
            c.setFillGray(0.3)
            _draw_lines(c, row.tag_lines, tx, first_baseline, FONT, SMALL_SIZE)
        elif col.key == "status":
            lines = [e.status or "Unknown", f"Score: {format_score(e.average_score)}"]
            _draw_lines(c, lines, tx, first_baseline, FONT, TEXT_SIZE)
        elif col.key == "progress":
            lines = [progress_text(e), format_lang(e.origin_language, flag=False)]
            _draw_lines(c, lines, tx, first_baseline, FONT, TEXT_SIZE)
        elif col.key == "updated":
            _draw_lines(c, [iso_date(e.last_updated_timestamp)], tx, first_baseline, FONT, TEXT_SIZE)
    c.setStrokeGray(0.85)
    c.line(MARGIN, row.top - row.height, PAGE_WIDTH - MARGIN, row.top - row.height)


def render_plan(plan: LayoutPlan) -> bytes:
    _pdfmetrics, canvas_module = _require_reportlab()
    from reportlab.lib.utils import ImageReader

    buf = io.BytesIO()
    c = _numbered_canvas_class(canvas_module)(buf, pagesize=(PAGE_WIDTH, PAGE_HEIGHT))
    c.setTitle(f"{plan.display_name}'s Bato Collection")
    for page in plan.pages:
        if page.has_header_block:
            _draw_header_block(c, plan)
        _draw_column_header(c, plan, page)
        for row in page.rows:
            _draw_row(c, plan, row, ImageReader)
        c.showPage()
    c.save()
    return buf.getvalue()


def generate_pdf(
    lists: Sequence[CollectionList],
    display_name: str,
    export_date: str,
    *,
    include_covers: bool = False,
) -> bytes:
    plan = plan_layout(lists, display_name, export_date, include_covers=include_covers)
    return render_plan(plan)

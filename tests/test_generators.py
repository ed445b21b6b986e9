from __future__ import annotations

import csv
import io
import json
import re

import pandas as pd
import pytest

from bato_export.editable import extract_snapshot
from bato_export.formatting import normalize_tag, tag_class
from bato_export.html_view import generate_editable_html, generate_html, load_static, tag_tiers
from bato_export.models import CollectionList, ComicEntry, HistoryRecord
from bato_export.printable import generate_printable_html
from bato_export.raw_json import generate_json, load_lists
from bato_export.tabular import csv_columns, generate_csv, generate_xlsx

EXPORT_DATE = "2024-03-01"


@pytest.fixture
def scenario_lists():
    """List A holds one comic with no history; list B is empty."""
    a = CollectionList.from_item({
        "id": "A",
        "data": {
            "name": "Reading",
            "isPublic": True,
            "comicNodes": [{"data": {"id": "c1", "name": "Solo Leveling", "origLang": "ko", "chaps_normal": 200, "urlPath": "/title/c1"}}],
        },
    })
    b = CollectionList.from_item({"id": "B", "data": {"name": "Empty Shelf", "isPublic": False, "comicNodes": []}})
    return [a, b]


def _full_entry() -> ComicEntry:
    return ComicEntry(
        id="c9",
        title='He said "hi", then left',
        origin_language="ja",
        genres=("Gore", "Shounen", "Comedy"),
        authors=("A. Writer", "B. Artist"),
        average_score=8.75,
        status="completed",
        latest_chapter_label="Ch.12",
        latest_chapter_count=12,
        last_updated_timestamp=1700000000000,
        source_path="/title/c9",
        cover_url="/media/c9.jpg",
        cover_data="data:image/png;base64,AAAA",
        history=HistoryRecord("c9", "Chapter 10", 1705000000000),
    )


def _parse_csv(text: str):
    assert text.startswith("\ufeff")
    return list(csv.reader(io.StringIO(text[1:], newline="")))


def test_csv_scenario_single_row(scenario_lists, fixed_now):
    text = generate_csv(scenario_lists, EXPORT_DATE, now=fixed_now)
    rows = _parse_csv(text)
    assert rows[0] == csv_columns(EXPORT_DATE)
    assert rows[0][8] == "Latest Ch (As of 2024-03-01)"
    assert len(rows) == 2
    row = dict(zip(rows[0], rows[1]))
    assert row["List Name"] == "Reading"
    assert row["Privacy"] == "Public"
    assert row["Comic Name"] == "Solo Leveling"
    assert row["Lang"] == "Manhwa"
    assert row["Status"] == ""
    assert row["Score"] == ""
    assert row["Last Read Ch"] == "-"
    assert row["Last Read Date"] == "-"
    assert row["Latest Ch (As of 2024-03-01)"] == "200"
    assert row["Updated"] == "Unknown"
    assert row["Bato URL"] == "https://bato.to/title/c1"


def test_csv_quotes_round_trip_and_line_endings(fixed_now):
    lst = CollectionList("L", "Mine, all mine", entries=(_full_entry(),))
    text = generate_csv([lst], EXPORT_DATE, now=fixed_now)
    assert "\r\n" not in text
    assert text.endswith("\n")
    rows = _parse_csv(text)
    row = dict(zip(rows[0], rows[1]))
    assert row["Comic Name"] == 'He said "hi", then left'
    assert row["List Name"] == "Mine, all mine"
    assert row["Genres"] == "Gore, Shounen, Comedy"
    assert row["Last Read Ch"] == "Chapter 10"
    assert row["Last Read Date"] == "2024-01-11"
    assert row["Score"] == "8.75"
    assert '"He said ""hi"", then left"' in text


def test_xlsx_has_same_rows(scenario_lists, fixed_now):
    data = generate_xlsx(scenario_lists, EXPORT_DATE, now=fixed_now)
    df = pd.read_excel(io.BytesIO(data), sheet_name="Collection", dtype=str)
    assert list(df.columns) == csv_columns(EXPORT_DATE)
    assert len(df) == 1
    assert df.loc[0, "Comic Name"] == "Solo Leveling"
    assert df.loc[0, "Lang"] == "Manhwa"


def test_json_keeps_every_field_when_populated():
    lst = CollectionList("L", "List", is_public=True, entries=(_full_entry(),))
    doc = json.loads(generate_json([lst], "Tester", EXPORT_DATE))
    assert doc["exported"] == EXPORT_DATE
    assert doc["user"] == "Tester"
    comic = doc["lists"][0]["comics"][0]
    assert comic == _full_entry().to_dict()
    assert comic["history"] == {"comicId": "c9", "chapterLabel": "Chapter 10", "readTimestamp": 1705000000000}
    assert comic["coverData"] == "data:image/png;base64,AAAA"
    lists, meta = load_lists(json.dumps(doc))
    assert lists == [lst]
    assert meta == {"exported": EXPORT_DATE, "user": "Tester"}


def test_json_keeps_absent_optionals_as_null():
    bare = ComicEntry(id="c0", title="Bare")
    lst = CollectionList("L", "List", entries=(bare,))
    doc = json.loads(generate_json([lst], "Tester", EXPORT_DATE))
    comic = doc["lists"][0]["comics"][0]
    assert set(comic) == set(bare.to_dict())
    for key in ("averageScore", "status", "latestChapterLabel", "lastUpdatedTimestamp", "coverUrl", "coverData", "history"):
        assert comic[key] is None
    assert load_lists(json.dumps(doc))[0] == [lst]


def test_html_skips_empty_lists_and_carries_filter_attributes(scenario_lists, fixed_now):
    page = generate_html(scenario_lists, "Tester", EXPORT_DATE, now=fixed_now)
    assert "Tester&#x27;s Bato Collection" in page
    assert "Solo Leveling" in page
    assert "Empty Shelf" not in page
    assert 'data-lang="ko"' in page
    assert 'data-chapters="200"' in page
    assert 'data-read=""' in page
    assert "No Image" in page
    assert "BatoView" in page


def test_html_prefers_embedded_cover_and_escapes_text(fixed_now):
    entry = _full_entry()
    page = generate_html([CollectionList("L", "<b>List</b>", entries=(entry,))], "T", EXPORT_DATE, now=fixed_now)
    assert 'src="data:image/png;base64,AAAA"' in page
    assert "&lt;b&gt;List&lt;/b&gt;" in page
    assert 'class="tag warning">Gore<' in page
    assert 'class="tag demographic">Shounen<' in page
    assert 'class="tag plain">Comedy<' in page
    assert 'data-tags="Gore|Shounen|Comedy"' in page


def test_printable_groups_by_list(scenario_lists, fixed_now):
    page = generate_printable_html(scenario_lists, "Tester", EXPORT_DATE, now=fixed_now)
    assert page.count('class="list-section"') == 1
    assert "Empty Shelf" not in page
    assert "window.print()" in page
    assert "Total Lists: 2" in page


def test_editable_embeds_snapshot_that_round_trips(scenario_lists):
    tricky = CollectionList("X", "Tricky", entries=(ComicEntry(id="z", title="</script><script>alert(1)</script>"),))
    lists = scenario_lists + [tricky]
    page = generate_editable_html(lists, "Tester", EXPORT_DATE)
    assert 'id="bato-data"' in page
    assert "alert(1)</script>" not in page
    snap = extract_snapshot(page)
    assert snap["user"] == "Tester"
    assert [l["name"] for l in snap["lists"]] == ["Reading", "Empty Shelf", "Tricky"]
    assert snap["lists"][2]["comics"][0]["title"] == "</script><script>alert(1)</script>"
    assert "BatoEditor" in page


def test_editable_page_carries_tag_tiers(scenario_lists):
    page = generate_editable_html(scenario_lists, "Tester", EXPORT_DATE)
    m = re.search(r'<script type="application/json" id="bato-tag-tiers">(.*?)</script>', page, re.S)
    assert m
    tiers = json.loads(m.group(1))
    assert tiers == tag_tiers()
    for tag in ("Gore", "Sexual_Violence", "Shounen(B)", "josei"):
        assert normalize_tag(tag) in tiers[tag_class(tag)]
    assert normalize_tag("Comedy") not in tiers["warning"] + tiers["demographic"]


def test_editable_script_styles_tags_and_hides_empty_lists():
    script = load_static("editable.js")
    assert "'<span class=\"tag ' + tagClass(g)" in script
    assert "bato-tag-tiers" in script
    assert "comicsOf(l).length > 0" in script

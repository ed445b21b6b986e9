from __future__ import annotations

import json

import pytest

from bato_export.client import BatoError
from bato_export.editable import EditableDataset, embed_snapshot, extract_snapshot
from bato_export.html_view import generate_editable_html
from bato_export.merge import attach_history
from bato_export.models import HistoryRecord


@pytest.fixture
def dataset(sample_lists) -> EditableDataset:
    lists = attach_history(sample_lists, {"c1": HistoryRecord("c1", "Chapter 150", 1705000000000)})
    return EditableDataset.from_lists(lists, "Tester", "2024-03-01")


def _names(ds: EditableDataset):
    return {lst["name"]: [c["id"] for c in lst["comics"]] for lst in ds.to_snapshot()["lists"]}


def test_add_assigns_fresh_local_ids(dataset: EditableDataset):
    first = dataset.add("Reading", {"title": "New One"})
    second = dataset.add("Reading", {"title": "New Two", "genres": ["drama"]})
    assert (first, second) == ("local-1", "local-2")
    assert _names(dataset)["Reading"] == ["c1", "c2", "local-1", "local-2"]
    added = dataset.get("local-2")
    assert added["title"] == "New Two"
    assert added["genres"] == ["drama"]
    assert added["history"] is None


def test_add_continues_after_existing_local_ids(dataset: EditableDataset):
    dataset.add("Reading", {"title": "a"})
    dataset.add("Reading", {"title": "b"})
    dataset.delete("local-1")
    assert dataset.add("Reading", {"title": "c"}) == "local-3"


def test_add_creates_missing_list(dataset: EditableDataset):
    new_id = dataset.add("Wishlist", {"title": "Someday"})
    snap = dataset.to_snapshot()
    wish = snap["lists"][-1]
    assert wish["name"] == "Wishlist"
    assert wish["id"] == "local-list-1"
    assert wish["isPublic"] is False
    assert [c["id"] for c in wish["comics"]] == [new_id]


def test_edit_updates_in_place(dataset: EditableDataset):
    assert dataset.edit("c2", {"status": "hiatus", "averageScore": 7.5}) is True
    c2 = dataset.get("c2")
    assert c2["status"] == "hiatus"
    assert c2["averageScore"] == 7.5
    assert _names(dataset)["Reading"] == ["c1", "c2"]


def test_edit_relocates_when_list_changes(dataset: EditableDataset):
    assert dataset.edit("c1", {"title": "Solo Leveling (Moved)"}, list_name="Dropped") is True
    names = _names(dataset)
    assert names["Reading"] == ["c2"]
    assert names["Dropped"] == ["c3", "c1"]
    moved = dataset.get("c1")
    assert moved["title"] == "Solo Leveling (Moved)"
    assert moved["history"]["chapterLabel"] == "Chapter 150"


def test_edit_same_list_keeps_position(dataset: EditableDataset):
    dataset.edit("c1", {"title": "x"}, list_name="Reading")
    assert _names(dataset)["Reading"] == ["c1", "c2"]


def test_edit_new_cover_url_drops_embedded_cover(dataset: EditableDataset):
    dataset.edit("c1", {"coverData": "data:image/png;base64,AAAA"})
    dataset.edit("c1", {"title": "Renamed", "coverUrl": dataset.get("c1")["coverUrl"]})
    assert dataset.get("c1")["coverData"] == "data:image/png;base64,AAAA"

    dataset.edit("c1", {"coverUrl": "https://img.example/new.jpg"})
    c1 = dataset.get("c1")
    assert c1["coverUrl"] == "https://img.example/new.jpg"
    assert c1["coverData"] is None


def test_edit_and_delete_unknown_id(dataset: EditableDataset):
    assert dataset.edit("nope", {"title": "x"}) is False
    assert dataset.delete("nope") is False


def test_delete_removes_by_id(dataset: EditableDataset):
    assert dataset.delete("c3") is True
    assert _names(dataset)["Dropped"] == []
    assert dataset.get("c3") is None


def test_unknown_fields_are_rejected(dataset: EditableDataset):
    with pytest.raises(ValueError):
        dataset.add("Reading", {"id": "forced"})
    with pytest.raises(ValueError):
        dataset.edit("c1", {"colour": "blue"})


def test_snapshot_round_trip_through_document(dataset: EditableDataset, sample_lists):
    dataset.add("Reading", {"title": "Added <b>", "latestChapterCount": 3, "latestChapterLabel": "Ch.3"})
    html_text = generate_editable_html(dataset.to_lists(), "Tester", "2024-03-01")
    restored = EditableDataset.from_snapshot(extract_snapshot(html_text))
    assert restored.to_snapshot() == dataset.to_snapshot()
    lists = restored.to_lists()
    assert lists[0].entries[-1].title == "Added <b>"
    assert lists[0].entries[-1].latest_chapter_count == 3


def test_from_snapshot_accepts_json_text(dataset: EditableDataset):
    text = json.dumps(dataset.to_snapshot())
    assert EditableDataset.from_snapshot(text).to_snapshot() == dataset.to_snapshot()


def test_to_snapshot_is_a_copy(dataset: EditableDataset):
    snap = dataset.to_snapshot()
    snap["lists"].clear()
    assert dataset.to_snapshot()["lists"]


def test_embed_snapshot_escapes_markup():
    text = embed_snapshot({"lists": [], "note": "</script>&"})
    assert "<" not in text and ">" not in text and "&" not in text
    assert json.loads(text)["note"] == "</script>&"


@pytest.mark.parametrize(
    "doc",
    [
        "<html><body>no data here</body></html>",
        '<script type="application/json" id="bato-data">{not json</script>',
        '<script type="application/json" id="bato-data">[1, 2]</script>',
    ],
)
def test_extract_snapshot_errors(doc: str):
    with pytest.raises(BatoError):
        extract_snapshot(doc)


def test_bad_snapshot_shape_rejected():
    with pytest.raises(BatoError):
        EditableDataset.from_snapshot({"user": "x"})

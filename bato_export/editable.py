from __future__ import annotations

import copy
import json
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .client import BatoError
from .models import CollectionList, ComicEntry
from .raw_json import build_document, lists_from_document

SNAPSHOT_ELEMENT_ID = "bato-data"
LOCAL_PREFIX = "local-"
LOCAL_LIST_PREFIX = "local-list-"

# Keys of a snapshot comic that the editor may change. ``id`` is fixed once assigned.
EDITABLE_FIELDS = (
    "title",
    "originLanguage",
    "genres",
    "authors",
    "averageScore",
    "status",
    "latestChapterLabel",
    "latestChapterCount",
    "lastUpdatedTimestamp",
    "sourcePath",
    "coverUrl",
    "coverData",
    "history",
)

_SNAPSHOT_RE = re.compile(
    r'<script[^>]*\bid="%s"[^>]*>(.*?)</script>' % SNAPSHOT_ELEMENT_ID,
    flags=re.S | re.I,
)


def _blank_comic(comic_id: str) -> Dict[str, Any]:
    return ComicEntry(id=comic_id, title="").to_dict()


class EditableDataset:
    """In-memory editable copy of an export.

    Holds the same JSON-shaped snapshot that the editable HTML embeds and
    that ``static/editable.js`` manipulates in the browser. Lists are
    addressed by name, comics by id across all lists.
    """

    def __init__(self, snapshot: Dict[str, Any]):
        if not isinstance(snapshot, dict) or not isinstance(snapshot.get("lists"), list):
            raise BatoError("Snapshot must be an object with a 'lists' array")
        self.snapshot = copy.deepcopy(snapshot)

    @classmethod
    def from_lists(cls, lists: Iterable[CollectionList], display_name: str, export_date: str) -> "EditableDataset":
        return cls(build_document(list(lists), display_name, export_date))

    @classmethod
    def from_snapshot(cls, data: Any) -> "EditableDataset":
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError as e:
                raise BatoError(f"Invalid snapshot JSON: {e}") from e
        return cls(data)

    def to_snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self.snapshot)

    def to_lists(self) -> List[CollectionList]:
        lists, _meta = lists_from_document(self.snapshot)
        return lists

    @property
    def lists(self) -> List[Dict[str, Any]]:
        return self.snapshot["lists"]

    def _comics(self, lst: Dict[str, Any]) -> List[Dict[str, Any]]:
        return lst.setdefault("comics", [])

    def _find(self, comic_id: str) -> Optional[Tuple[Dict[str, Any], int]]:
        for lst in self.lists:
            for i, comic in enumerate(self._comics(lst)):
                if comic.get("id") == comic_id:
                    return lst, i
        return None

    def _list_named(self, name: str, create: bool = True) -> Optional[Dict[str, Any]]:
        for lst in self.lists:
            if lst.get("name") == name:
                return lst
        if not create:
            return None
        taken = {str(lst.get("id")) for lst in self.lists}
        n = 1
        while f"{LOCAL_LIST_PREFIX}{n}" in taken:
            n += 1
        lst = {"id": f"{LOCAL_LIST_PREFIX}{n}", "name": name, "isPublic": False, "comics": []}
        self.lists.append(lst)
        return lst

    def _next_id(self) -> str:
        taken = set()
        for lst in self.lists:
            for comic in self._comics(lst):
                cid = str(comic.get("id") or "")
                if cid.startswith(LOCAL_PREFIX) and cid[len(LOCAL_PREFIX):].isdigit():
                    taken.add(int(cid[len(LOCAL_PREFIX):]))
        return f"{LOCAL_PREFIX}{max(taken, default=0) + 1}"

    @staticmethod
    def _check_fields(fields: Dict[str, Any]) -> None:
        unknown = sorted(set(fields) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValueError(f"Unknown comic fields: {', '.join(unknown)}")

    def add(self, list_name: str, fields: Dict[str, Any]) -> str:
        """Append a new comic to ``list_name`` (created if missing) and return its id."""
        self._check_fields(fields)
        comic_id = self._next_id()
        comic = _blank_comic(comic_id)
        comic.update(copy.deepcopy(fields))
        self._comics(self._list_named(list_name)).append(comic)
        return comic_id

    def edit(self, comic_id: str, fields: Dict[str, Any], list_name: Optional[str] = None) -> bool:
        """Update a comic in place; move it to the end of ``list_name`` when that differs."""
        self._check_fields(fields)
        found = self._find(comic_id)
        if found is None:
            return False
        lst, i = found
        comic = self._comics(lst)[i]
        # an embedded cover belongs to the old URL
        if "coverUrl" in fields and "coverData" not in fields and fields["coverUrl"] != comic.get("coverUrl"):
            comic["coverData"] = None
        comic.update(copy.deepcopy(fields))
        if list_name is not None and list_name != lst.get("name"):
            del self._comics(lst)[i]
            self._comics(self._list_named(list_name)).append(comic)
        return True

    def delete(self, comic_id: str) -> bool:
        found = self._find(comic_id)
        if found is None:
            return False
        lst, i = found
        del self._comics(lst)[i]
        return True

    def get(self, comic_id: str) -> Optional[Dict[str, Any]]:
        found = self._find(comic_id)
        if found is None:
            return None
        lst, i = found
        return copy.deepcopy(self._comics(lst)[i])


def embed_snapshot(snapshot: Dict[str, Any]) -> str:
    """JSON text safe to place inside a <script> element."""
    text = json.dumps(snapshot, ensure_ascii=False)
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


def extract_snapshot(html_text: str) -> Dict[str, Any]:
    """Read the embedded dataset back out of a (possibly edited and saved) editable export."""
    m = _SNAPSHOT_RE.search(html_text or "")
    if not m:
        raise BatoError(f'No <script id="{SNAPSHOT_ELEMENT_ID}"> block found in document')
    try:
        data = json.loads(m.group(1))
    except ValueError as e:
        raise BatoError(f"Embedded snapshot is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise BatoError("Embedded snapshot is not an object")
    return data

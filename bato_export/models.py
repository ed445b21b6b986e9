from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

# Declared precedence for synonymous upstream fields. First non-empty wins.
STATUS_KEYS = ("status", "uploadStatus", "originalStatus")
UPDATED_KEYS = ("dateUpdate", "dateModify", "dateCreate")
COVER_KEYS = ("urlCover600", "urlCoverOri")
CHAPTER_COUNT_KEYS = ("chaps_normal", "chapters_count")


def _is_empty(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, str) and not v.strip():
        return True
    if isinstance(v, (list, tuple, dict, set)) and not v:
        return True
    return False


def pick_first(node: Dict[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among ``keys`` in ``node`` (or None)."""
    for k in keys:
        v = node.get(k)
        if not _is_empty(v):
            return v
    return None


def _unique(items: Iterable[Any]) -> Tuple[str, ...]:
    # set semantics with stable order
    return tuple(dict.fromkeys(str(x) for x in items if not _is_empty(x)))


def _to_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _to_int(v: Any) -> Optional[int]:
    f = _to_float(v)
    return int(f) if f is not None else None


@dataclass(frozen=True)
class HistoryRecord:
    comic_id: str
    chapter_label: str
    read_timestamp: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "comicId": self.comic_id,
            "chapterLabel": self.chapter_label,
            "readTimestamp": self.read_timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryRecord":
        return cls(
            comic_id=str(data.get("comicId") or ""),
            chapter_label=str(data.get("chapterLabel") or "?"),
            read_timestamp=_to_int(data.get("readTimestamp")),
        )


def history_chapter_label(chapter: Dict[str, Any]) -> str:
    """Display label for a history chapter node: dname, title, then Ch.<order>."""
    label = pick_first(chapter, "dname", "title")
    if label is not None:
        return str(label)
    order = chapter.get("order")
    if order is not None:
        return f"Ch.{order}"
    return "?"


@dataclass(frozen=True)
class ComicEntry:
    id: str
    title: str
    origin_language: Optional[str] = None
    genres: Tuple[str, ...] = ()
    authors: Tuple[str, ...] = ()
    average_score: Optional[float] = None
    status: Optional[str] = None
    latest_chapter_label: Optional[str] = None
    latest_chapter_count: Optional[int] = None
    last_updated_timestamp: Optional[int] = None
    source_path: str = ""
    cover_url: Optional[str] = None
    cover_data: Optional[str] = None
    history: Optional[HistoryRecord] = None

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "ComicEntry":
        """Normalize one ``comicNodes[].data`` object from the list query."""
        count = _to_int(pick_first(node, *CHAPTER_COUNT_KEYS))
        status = pick_first(node, *STATUS_KEYS)
        return cls(
            id=str(node.get("id") or ""),
            title=str(node.get("name") or node.get("title") or ""),
            origin_language=node.get("origLang") or None,
            genres=_unique(node.get("genres") or []),
            authors=tuple(str(a) for a in (node.get("authors") or []) if not _is_empty(a)),
            average_score=_to_float(node.get("score_avg")),
            status=str(status) if status is not None else None,
            latest_chapter_label=f"Ch.{count}" if count else None,
            latest_chapter_count=count,
            last_updated_timestamp=_to_int(pick_first(node, *UPDATED_KEYS)),
            source_path=str(node.get("urlPath") or ""),
            cover_url=pick_first(node, *COVER_KEYS),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "originLanguage": self.origin_language,
            "genres": list(self.genres),
            "authors": list(self.authors),
            "averageScore": self.average_score,
            "status": self.status,
            "latestChapterLabel": self.latest_chapter_label,
            "latestChapterCount": self.latest_chapter_count,
            "lastUpdatedTimestamp": self.last_updated_timestamp,
            "sourcePath": self.source_path,
            "coverUrl": self.cover_url,
            "coverData": self.cover_data,
            "history": self.history.to_dict() if self.history else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComicEntry":
        hist = data.get("history")
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            origin_language=data.get("originLanguage") or None,
            genres=_unique(data.get("genres") or []),
            authors=tuple(str(a) for a in (data.get("authors") or []) if not _is_empty(a)),
            average_score=_to_float(data.get("averageScore")),
            status=data.get("status") or None,
            latest_chapter_label=data.get("latestChapterLabel") or None,
            latest_chapter_count=_to_int(data.get("latestChapterCount")),
            last_updated_timestamp=_to_int(data.get("lastUpdatedTimestamp")),
            source_path=str(data.get("sourcePath") or ""),
            cover_url=data.get("coverUrl") or None,
            cover_data=data.get("coverData") or None,
            history=HistoryRecord.from_dict(hist) if isinstance(hist, dict) else None,
        )


@dataclass(frozen=True)
class CollectionList:
    id: str
    name: str
    is_public: bool = False
    entries: Tuple[ComicEntry, ...] = field(default_factory=tuple)

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "CollectionList":
        """Build from one ``get_user_mylistList.items[]`` element."""
        data = item.get("data") or {}
        nodes = data.get("comicNodes") or []
        entries = []
        seen = set()
        for node in nodes:
            comic = (node or {}).get("data")
            if not isinstance(comic, dict):
                continue
            entry = ComicEntry.from_node(comic)
            # one entry per id within a list
            if entry.id in seen:
                continue
            seen.add(entry.id)
            entries.append(entry)
        return cls(
            id=str(item.get("id") or ""),
            name=str(data.get("name") or ""),
            is_public=bool(data.get("isPublic")),
            entries=tuple(entries),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "isPublic": self.is_public,
            "comics": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollectionList":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            is_public=bool(data.get("isPublic")),
            entries=tuple(ComicEntry.from_dict(c) for c in (data.get("comics") or []) if isinstance(c, dict)),
        )


# Mapping comic id -> most recent read event, in first-seen order.
HistoryIndex = Dict[str, HistoryRecord]


def flatten(lists: Iterable[CollectionList]) -> List[Tuple[CollectionList, ComicEntry]]:
    """All (list, entry) pairs across lists in encounter order."""
    return [(lst, e) for lst in lists for e in lst.entries]


def replace_entry(entry: ComicEntry, **changes: Any) -> ComicEntry:
    return dataclasses.replace(entry, **changes)

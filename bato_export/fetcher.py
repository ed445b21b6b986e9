from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .client import BatoClient
from .models import CollectionList, HistoryIndex, HistoryRecord, history_chapter_label

COMIC_FETCH_LIMIT = 5000
HISTORY_FETCH_LIMIT = 300
LIST_PAGE_SIZE = 20
MAX_HISTORY_PAGES = 20

StatusFn = Optional[Callable[[str], None]]

LIST_QUERY = """
query get_user_mylistList($select: MylistList_Select) {
    get_user_mylistList(select: $select) {
        paging { total pages page init size skip limit prev next }
        items {
            id
            data {
                name
                isPublic
                comicNodes(amount: %d) {
                    data {
                        id
                        name
                        urlPath
                        urlCover600
                        urlCoverOri
                        genres
                        authors
                        score_avg
                        uploadStatus
                        originalStatus
                        origLang
                        dateUpdate
                        dateModify
                        chaps_normal
                    }
                }
            }
        }
    }
}""" % COMIC_FETCH_LIMIT

HISTORY_QUERY = """
query get_sser_myHistory($select: Sser_MyHistory_Select) {
    get_sser_myHistory(select: $select) {
        reqLimit
        newStart
        items {
            date
            comicNode { id }
            chapterNode {
                data {
                    dname
                    title
                    order
                }
            }
        }
    }
}"""


def _report(on_status: StatusFn, msg: str) -> None:
    if on_status:
        on_status(msg)


def fetch_all_lists(
    client: BatoClient,
    user_id: str,
    *,
    on_status: StatusFn = None,
    page_size: int = LIST_PAGE_SIZE,
    sort: str = "update",
) -> List[CollectionList]:
    """Fetch every collection list of ``user_id``, one page at a time.

    Paging follows the ``paging.pages`` count reported by each response, so an
    empty page in the middle does not stop it. A response without ``items``
    ends the loop and the lists gathered so far are returned; an empty
    collection is not an error.
    """
    results: List[CollectionList] = []
    page = 1
    while True:
        _report(on_status, f"Fetching lists page {page}...")
        data = client.graphql(
            LIST_QUERY,
            variables={"select": {"page": page, "size": page_size, "sortby": sort, "userId": user_id}},
        )
        block = data.get("get_user_mylistList") or {}
        items = block.get("items")
        if not isinstance(items, list):
            break
        for item in items:
            if isinstance(item, dict):
                results.append(CollectionList.from_item(item))
        paging = block.get("paging") or {}
        try:
            total_pages = int(paging.get("pages") or 0)
        except (TypeError, ValueError):
            total_pages = 0
        if page >= total_pages:
            break
        page += 1
    return results


def _history_item_record(item: Dict[str, Any]) -> Optional[HistoryRecord]:
    comic = item.get("comicNode") or {}
    comic_id = comic.get("id")
    chapter = (item.get("chapterNode") or {}).get("data")
    if not comic_id or not isinstance(chapter, dict):
        return None
    date = item.get("date")
    try:
        ts = int(date) if date is not None else None
    except (TypeError, ValueError):
        ts = None
    return HistoryRecord(comic_id=str(comic_id), chapter_label=history_chapter_label(chapter), read_timestamp=ts)


def fetch_history_index(
    client: BatoClient,
    *,
    on_status: StatusFn = None,
    limit: int = HISTORY_FETCH_LIMIT,
    max_pages: int = MAX_HISTORY_PAGES,
) -> HistoryIndex:
    """Walk the reading history by ``newStart`` cursor into a comic id -> record index.

    History arrives newest first, so the first record seen for a comic is kept
    and later ones are ignored. The walk ends on an empty page, on a missing
    cursor, or after ``max_pages`` pages.
    """
    index: HistoryIndex = {}
    cursor: Optional[Any] = None
    page = 1
    while page <= max_pages:
        _report(on_status, f"Fetching history page {page}...")
        data = client.graphql(HISTORY_QUERY, variables={"select": {"limit": limit, "start": cursor}})
        block = data.get("get_sser_myHistory") or {}
        items = block.get("items") or []
        if not items:
            break
        for item in items:
            if not isinstance(item, dict):
                continue
            rec = _history_item_record(item)
            if rec is None or rec.comic_id in index:
                continue
            index[rec.comic_id] = rec
        cursor = block.get("newStart")
        if not cursor:
            break
        page += 1
    else:
        _report(on_status, f"History truncated at {max_pages} pages ({len(index)} comics).")
    return index

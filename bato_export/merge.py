from __future__ import annotations

import dataclasses
from typing import Iterable, List

from .models import CollectionList, HistoryIndex


def attach_history(lists: Iterable[CollectionList], history_index: HistoryIndex) -> List[CollectionList]:
    """Return new lists whose entries carry their matching history record.

    Entries without a record get ``history=None``. Inputs are left untouched,
    so attaching the same index twice yields the same result as once.
    """
    merged: List[CollectionList] = []
    for lst in lists:
        entries = tuple(
            dataclasses.replace(e, history=history_index.get(e.id))
            for e in lst.entries
        )
        merged.append(dataclasses.replace(lst, entries=entries))
    return merged

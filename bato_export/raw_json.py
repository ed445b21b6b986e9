from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence, Tuple

from .client import BatoError
from .models import CollectionList


def build_document(lists: Sequence[CollectionList], display_name: str, export_date: str) -> Dict[str, Any]:
    return {
        "exported": export_date,
        "user": display_name,
        "lists": [lst.to_dict() for lst in lists],
    }


def generate_json(lists: Sequence[CollectionList], display_name: str, export_date: str) -> str:
    """Lossless dump of the merged model, optional fields kept as null."""
    return json.dumps(build_document(lists, display_name, export_date), ensure_ascii=False, indent=2)


def lists_from_document(doc: Any) -> Tuple[List[CollectionList], Dict[str, Any]]:
    """Rebuild lists from a parsed export document. Returns (lists, header fields)."""
    if isinstance(doc, list):
        raw_lists = doc
        meta: Dict[str, Any] = {}
    elif isinstance(doc, dict) and isinstance(doc.get("lists"), list):
        raw_lists = doc["lists"]
        meta = {k: doc.get(k) for k in ("exported", "user") if doc.get(k) is not None}
    else:
        raise BatoError("Not a bato export document (missing 'lists')")
    return [CollectionList.from_dict(d) for d in raw_lists if isinstance(d, dict)], meta


def load_lists(text: str) -> Tuple[List[CollectionList], Dict[str, Any]]:
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise BatoError(f"Invalid JSON export: {e}") from e
    return lists_from_document(doc)

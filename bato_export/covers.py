from __future__ import annotations

import base64
import dataclasses
import queue
import threading
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .models import CollectionList, ComicEntry

COVER_WORKERS = 5
REPORT_EVERY = 5

# (list index, entry index, entry)
AssetJob = Tuple[int, int, ComicEntry]
FetchBytes = Callable[[str], Tuple[bytes, str]]


def sniff_image_mime(data: bytes, fallback: str = "") -> str:
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:2] == b"\xff\xd8":
        return "image/jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if fallback.startswith("image/"):
        return fallback
    return "image/jpeg"


def to_data_url(data: bytes, content_type: str = "") -> str:
    mime = sniff_image_mime(data, content_type)
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def build_queue(lists: Sequence[CollectionList]) -> "queue.Queue[AssetJob]":
    """One job per entry with a cover reference, across every list, in encounter order."""
    jobs: "queue.Queue[AssetJob]" = queue.Queue()
    for li, lst in enumerate(lists):
        for ei, entry in enumerate(lst.entries):
            if entry.cover_url:
                jobs.put((li, ei, entry))
    return jobs


def enrich_covers(
    lists: Sequence[CollectionList],
    fetch_bytes: FetchBytes,
    *,
    on_status: Optional[Callable[[str], None]] = None,
    workers: int = COVER_WORKERS,
    debug: bool = False,
) -> List[CollectionList]:
    """Download every referenced cover with a fixed pool of worker threads.

    Workers claim jobs from a shared queue until it is empty; ``get_nowait``
    hands each job to exactly one worker. A failed download leaves that
    entry's ``cover_data`` as None and never stops the other workers. Returns
    only after every worker has been joined, with new lists carrying the
    embedded covers.
    """
    jobs = build_queue(lists)
    total = jobs.qsize()
    results: Dict[Tuple[int, int], Optional[str]] = {}
    lock = threading.Lock()
    processed = 0

    def report(msg: str) -> None:
        if on_status:
            on_status(msg)

    report(f"Downloading covers: 0/{total}")

    def download(entry: ComicEntry) -> Optional[str]:
        try:
            data, ctype = fetch_bytes(entry.cover_url or "")
        except Exception as e:
            if debug:
                print(f"[cover-debug] {entry.id} {entry.cover_url}: {e}")
            return None
        if not data:
            return None
        return to_data_url(data, ctype)

    def worker() -> None:
        nonlocal processed
        while True:
            try:
                li, ei, entry = jobs.get_nowait()
            except queue.Empty:
                return
            encoded = download(entry)
            with lock:
                results[(li, ei)] = encoded
                processed += 1
                # reported under the lock so counts arrive in order
                if processed % REPORT_EVERY == 0 or processed == total:
                    report(f"Downloading covers: {processed}/{total}")

    threads = [threading.Thread(target=worker, name=f"cover-{i}", daemon=True) for i in range(max(1, workers))]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    enriched: List[CollectionList] = []
    for li, lst in enumerate(lists):
        entries = tuple(
            dataclasses.replace(e, cover_data=results[(li, ei)]) if (li, ei) in results else e
            for ei, e in enumerate(lst.entries)
        )
        enriched.append(dataclasses.replace(lst, entries=entries))
    return enriched

"""Export Bato.to reading lists, merged with reading history, to several file formats."""

from .client import BatoClient, BatoError, FetchError
from .models import CollectionList, ComicEntry, HistoryRecord
from .pipeline import ExportOptions, run_convert, run_export

__version__ = "1.0.0"

__all__ = [
    "BatoClient",
    "BatoError",
    "FetchError",
    "CollectionList",
    "ComicEntry",
    "HistoryRecord",
    "ExportOptions",
    "run_convert",
    "run_export",
]

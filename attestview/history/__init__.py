from .store import HISTORY_STORAGE_KEY, HistoryItem, HistoryStore, format_timestamp, preview

__all__ = [
    "HISTORY_STORAGE_KEY",
    "HistoryItem",
    "HistoryStore",
    "preview",
    "format_timestamp",
]

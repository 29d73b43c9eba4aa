from .board import EditSession, FilterView, SortKey, TaskBoard, compose_deadline, format_deadline
from .sources import LocalTaskSource, RemoteTaskSource, TaskSource, TaskSourceError

__all__ = [
    "EditSession",
    "FilterView",
    "LocalTaskSource",
    "RemoteTaskSource",
    "SortKey",
    "TaskBoard",
    "TaskSource",
    "TaskSourceError",
    "compose_deadline",
    "format_deadline",
]

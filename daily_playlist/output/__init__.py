# Output module - 输出模块
# 快照 JSON 与 Markdown 报告

from .snapshot_writer import SnapshotWriter, WriteResult, format_duration

__all__ = [
    "SnapshotWriter",
    "WriteResult",
    "format_duration",
]

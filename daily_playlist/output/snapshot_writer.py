"""
快照输出模块
Snapshot Writer Module

将播放列表快照写入 <output_dir>/<YYYY-MM-DD>.json，并生成同名 Markdown 报告。
同一天多次运行时按视频 ID 与已有文件合并，合并后按发布日期降序排列。
Writes the snapshot to <output_dir>/<YYYY-MM-DD>.json plus a Markdown report
of the same name. Repeated runs on one day merge with the existing file by
video ID, newest publish date first.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from daily_playlist.aggregation import TopicCluster
from daily_playlist.models import CuratedItem, PlaylistSnapshot

logger = logging.getLogger(__name__)

WATCH_VIDEOS_URL = "https://www.youtube.com/watch_videos?video_ids="


def format_duration(duration: int | None) -> str:
    """
    时长格式化为 m:ss，未知时为 ??:??
    Format a duration as m:ss, or ??:?? when unknown

    Examples:
        >>> format_duration(754)
        '12:34'
        >>> format_duration(None)
        '??:??'
    """
    if not duration:
        return '??:??'
    return f"{duration // 60}:{duration % 60:02d}"


@dataclass
class WriteResult:
    """写入结果 / Paths written and merge counts"""
    json_path: Path
    markdown_path: Path
    total_count: int
    new_count: int
    existing_count: int


class SnapshotWriter:
    """
    快照写入器
    Snapshot Writer

    Attributes:
        output_dir: 输出目录
    """

    def __init__(self, output_dir: str = 'output'):
        self.output_dir = Path(output_dir)

    def json_path(self, date_str: str) -> Path:
        return self.output_dir / f"{date_str}.json"

    def load_existing(self, date_str: str) -> PlaylistSnapshot | None:
        """
        读取当天已有的快照，无法解析时视为不存在
        Load today's earlier snapshot; an unreadable file counts as absent
        """
        path = self.json_path(date_str)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return PlaylistSnapshot.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Error parsing daily file {path.name}: {e}")
            return None

    def merge(self, snapshot: PlaylistSnapshot, existing: PlaylistSnapshot | None) -> PlaylistSnapshot:
        """
        合并同一天的快照，已有条目优先保留
        Merge with the same day's earlier snapshot; earlier entries are kept
        """
        if existing is None:
            return snapshot
        known = {item.id for item in existing.items}
        new_items = [item for item in snapshot.items if item.id not in known]
        merged: list[CuratedItem] = list(existing.items) + new_items
        merged.sort(key=lambda item: item.upload_date, reverse=True)
        return PlaylistSnapshot(
            run_at=snapshot.run_at,
            items=tuple(merged),
            lookback_hours=snapshot.lookback_hours,
            cancelled=snapshot.cancelled,
        )

    def render_markdown(self, snapshot: PlaylistSnapshot, clusters: list[TopicCluster] | None = None) -> str:
        """
        生成 Markdown 报告
        Render the Markdown report
        """
        lines = [
            f"# Daily Playlist - {snapshot.date_str}",
            "",
            f"Generated at: {snapshot.run_at.strftime('%H:%M:%S')}",
            "",
            f"**Videos**: {snapshot.total_count}" + (" (partial run)" if snapshot.cancelled else ""),
            "",
        ]

        if snapshot.items:
            video_ids = ','.join(item.id for item in snapshot.items)
            lines += [f"### [Watch All ({snapshot.total_count})]({WATCH_VIDEOS_URL}{video_ids})", ""]

        lines += ["## Videos", ""]
        if not snapshot.items:
            lines.append("_No new videos today._")
        for item in snapshot.items:
            lines.append(
                f"- **{item.channel_name or 'Unknown'}**: [{item.title or 'Untitled'}]({item.url}) "
                f"({format_duration(item.duration)}) [{item.category or 'other'}]"
            )

        related = [c for c in clusters or [] if len(c) > 1]
        if related:
            lines += ["", "## Topics", ""]
            for cluster in related:
                lines.append(f"### {cluster.topic} ({len(cluster)} videos)")
                lines.append("")
                for item in cluster.items:
                    lines.append(f"- **{item.channel_name}**: [{item.title}]({item.url})")
                lines.append("")

        return '\n'.join(lines).rstrip('\n') + '\n'

    def write(self, snapshot: PlaylistSnapshot, clusters: list[TopicCluster] | None = None) -> WriteResult:
        """
        写入 JSON 与 Markdown
        Write the JSON snapshot and the Markdown report

        Returns:
            WriteResult
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        existing = self.load_existing(snapshot.date_str)
        merged = self.merge(snapshot, existing)

        json_path = self.json_path(snapshot.date_str)
        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(merged.to_dict(), f, ensure_ascii=False, indent=2)
        logger.info(f"Saved JSON: {json_path}")

        markdown_path = json_path.with_suffix('.md')
        with open(markdown_path, 'w', encoding='utf-8') as f:
            f.write(self.render_markdown(merged, clusters))
        logger.info(f"Saved Markdown: {markdown_path}")

        existing_count = existing.total_count if existing else 0
        return WriteResult(
            json_path=json_path,
            markdown_path=markdown_path,
            total_count=merged.total_count,
            new_count=merged.total_count - existing_count,
            existing_count=existing_count,
        )

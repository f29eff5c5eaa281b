"""
数据模型模块
Data Models Module

定义频道、视频条目、诊断计数和播放列表快照的数据模型。
Defines sources, fetched items, per-source diagnostics and the playlist snapshot.
"""

from dataclasses import dataclass, field, asdict, fields
from datetime import datetime
from typing import Any


# 条目来源标记
# Provenance tags: which fetch path produced an item
PROVENANCE_RSS = "rss"
PROVENANCE_YTDLP = "ytdlp"

# 时长阈值（秒）
SHORT_FORM_SECONDS = 60
DEEP_DIVE_SECONDS = 300

UPLOAD_DATE_FORMAT = "%Y%m%d"


def to_upload_date(value: datetime) -> str:
    """
    将时间转换为定宽可排序的日期键 YYYYMMDD
    Convert a datetime to the fixed-width sortable date key YYYYMMDD

    Examples:
        >>> to_upload_date(datetime(2026, 2, 6, 23, 59))
        '20260206'
    """
    return value.strftime(UPLOAD_DATE_FORMAT)


def classify_context_tier(duration: int | None) -> str:
    """
    根据时长划分内容层级
    Classify an item into a context tier by duration

    A: >= 5 分钟, B: 1-5 分钟或未知, C: < 1 分钟

    Examples:
        >>> classify_context_tier(None)
        'B'
        >>> classify_context_tier(45)
        'C'
        >>> classify_context_tier(600)
        'A'
    """
    if duration is None:
        return "B"
    if duration >= DEEP_DIVE_SECONDS:
        return "A"
    if duration >= SHORT_FORM_SECONDS:
        return "B"
    return "C"


@dataclass
class Source:
    """
    被追踪的频道
    A tracked source (channel)

    Attributes:
        name: 显示名称
        url: 可解析的频道 URL
        channel_id: 已解析的频道 ID，未解析时为 None
        include_shorts: 是否允许短视频
    """
    name: str
    url: str
    channel_id: str | None = None
    include_shorts: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Source":
        return cls(
            name=data["name"],
            url=data["url"],
            channel_id=data.get("channel_id") or None,
            include_shorts=bool(data.get("include_shorts", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RawItem:
    """
    过滤前的单个视频条目
    A single fetched item before filtering

    Attributes:
        id: 视频 ID（同一频道内唯一，跨运行稳定）
        title: 标题
        upload_date: 规范化发布日期 YYYYMMDD，缺失时为空字符串
        channel_name: 所属频道显示名称
        duration: 时长（秒），未知时为 None（不做猜测）
        provenance: 产生该条目的抓取路径（rss / ytdlp）
        published: 原始发布时间字符串
        description: 描述（仅备用通道提供）
        thumbnail: 缩略图 URL
        category: 标题关键词分类
    """
    id: str
    title: str
    upload_date: str
    channel_name: str
    duration: int | None = None
    provenance: str = PROVENANCE_RSS
    published: str = ""
    description: str = ""
    thumbnail: str = ""
    category: str = "other"

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.id}"

    @property
    def duration_known(self) -> bool:
        return self.duration is not None

    @property
    def context_tier(self) -> str:
        return classify_context_tier(self.duration)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["context_tier"] = self.context_tier
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawItem":
        """
        从字典创建条目，忽略未知字段
        Build an item from a dict, ignoring unknown keys
        """
        valid_fields = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in valid_fields})


@dataclass
class CuratedItem(RawItem):
    """
    通过时效和格式过滤的条目
    An item that survived recency and format filtering
    """

    @classmethod
    def from_raw(cls, item: RawItem) -> "CuratedItem":
        return cls(**asdict(item))


@dataclass
class SourceDiagnostics:
    """
    单个频道的诊断计数
    Per-source diagnostic counters
    """
    source_name: str
    fetched: int = 0
    recency_dropped: int = 0
    format_dropped: int = 0
    keyword_dropped: int = 0
    seen_dropped: int = 0
    final: int = 0
    provenance: str | None = None
    resolution_failed: bool = False
    timed_out: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.timed_out or (bool(self.errors) and self.fetched == 0)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PlaylistSnapshot:
    """
    单次运行的输出快照，创建后不可变
    The output of one run; immutable once created

    Attributes:
        run_at: 运行时间
        items: 按发布日期降序排列的条目
        lookback_hours: 时间窗口
        cancelled: 运行是否被中途取消（部分结果）
    """
    run_at: datetime
    items: tuple[CuratedItem, ...] = ()
    lookback_hours: int = 48
    cancelled: bool = False

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def date_str(self) -> str:
        return self.run_at.strftime("%Y-%m-%d")

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_at": self.run_at.isoformat(),
            "total_count": self.total_count,
            "lookback_hours": self.lookback_hours,
            "cancelled": self.cancelled,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaylistSnapshot":
        return cls(
            run_at=datetime.fromisoformat(data["run_at"]),
            items=tuple(CuratedItem.from_dict(i) for i in data.get("items", [])),
            lookback_hours=data.get("lookback_hours", 48),
            cancelled=data.get("cancelled", False),
        )

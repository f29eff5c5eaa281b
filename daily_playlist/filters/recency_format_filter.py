"""
时效与格式过滤器
Recency & Format Filter

保留时间窗口内发布、且不是短视频的条目。
Keeps items published within the lookback window that are not short-form.

时效规则 Recency rule:
    截止时刻先截断到当天零点，再按天比较：发布日期 >= 截止日期即通过。
    The cutoff is truncated to midnight and compared at day granularity: an
    item passes when its publish date is on or after the cutoff date.

格式规则 Format rule:
    频道允许短视频时一律通过；否则时长已知且 < 60 秒则丢弃；
    否则标题包含短视频标记（不区分大小写）则丢弃；其余通过。
    Items from a source that allows short-form always pass. Otherwise known
    duration under 60 seconds drops the item, then a case-insensitive
    short-form marker in the title drops it, and everything else passes.
    Unknown duration without a marker passes.

两条规则先时效后格式依次判断，丢弃数分别计入对应计数器。
Recency is checked first, then format; each drop is attributed to the rule
that caused it.
"""

import logging
from datetime import datetime, timedelta

from daily_playlist.models import (
    SHORT_FORM_SECONDS,
    CuratedItem,
    RawItem,
    Source,
    to_upload_date,
)

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_HOURS = 48
DEFAULT_SHORT_FORM_MARKERS = ('#shorts',)


def cutoff_date_key(now: datetime, lookback_hours: float) -> str:
    """
    计算截止日期键（截断到天）
    Compute the cutoff date key, truncated to the day

    Examples:
        >>> cutoff_date_key(datetime(2026, 2, 8, 9, 30), 48)
        '20260206'
    """
    return to_upload_date(now - timedelta(hours=lookback_hours))


class RecencyFormatFilter:
    """
    时效与格式过滤器
    Recency & Format Filter

    Attributes:
        lookback_hours: 时间窗口（小时）
        min_duration: 短视频时长阈值（秒），小于该值视为短视频
        markers: 标题中的短视频标记
    """

    def __init__(
        self,
        lookback_hours: float = DEFAULT_LOOKBACK_HOURS,
        min_duration: int = SHORT_FORM_SECONDS,
        markers: tuple[str, ...] | list[str] = DEFAULT_SHORT_FORM_MARKERS,
    ):
        self.lookback_hours = lookback_hours
        self.min_duration = min_duration
        self.markers = tuple(m.lower() for m in markers if m)

    def is_recent(self, item: RawItem, cutoff_key: str) -> bool:
        """没有发布日期的条目不通过 / Items without a date never pass"""
        if not item.upload_date:
            return False
        return item.upload_date >= cutoff_key

    def is_short_form(self, item: RawItem) -> bool:
        if item.duration is not None and item.duration < self.min_duration:
            return True
        title_lower = (item.title or '').lower()
        return any(marker in title_lower for marker in self.markers)

    def passes_format(self, item: RawItem, source: Source) -> bool:
        if source.include_shorts:
            return True
        return not self.is_short_form(item)

    def split_recent(self, items: list[RawItem], now: datetime) -> tuple[list[RawItem], list[RawItem]]:
        """
        按时效拆分（在时长补全之前调用）
        Split by recency; runs before duration enrichment

        Returns:
            (recent, too_old)
        """
        cutoff_key = cutoff_date_key(now, self.lookback_hours)
        recent: list[RawItem] = []
        too_old: list[RawItem] = []
        for item in items:
            if self.is_recent(item, cutoff_key):
                recent.append(item)
            else:
                logger.debug(f"  [SKIP] Too old: {item.title} ({item.upload_date or 'no date'})")
                too_old.append(item)
        return recent, too_old

    def split_format(self, items: list[RawItem], source: Source) -> tuple[list[CuratedItem], list[RawItem]]:
        """
        按格式拆分，通过的条目转为 CuratedItem
        Split by format; passing items become CuratedItem

        Returns:
            (passed, short_form)
        """
        passed: list[CuratedItem] = []
        dropped: list[RawItem] = []
        for item in items:
            if self.passes_format(item, source):
                passed.append(CuratedItem.from_raw(item))
            else:
                logger.debug(f"  [SHORTS] Excluded short: \"{item.title}\"")
                dropped.append(item)
        return passed, dropped

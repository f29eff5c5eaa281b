"""
DualSourceFetcher - 双通道获取器
DualSourceFetcher - Dual-Source Fetcher with fallback

先走快速通道（按频道 ID 请求 RSS），零条目时再走备用通道（yt-dlp 按 URL 枚举）。
Tries the fast path (RSS keyed by channel ID) first and falls back to the
slower enumerator (yt-dlp by URL) when the fast path yields nothing.

- 频道 ID 未解析时直接跳过快速通道
- 快速通道的超时、HTTP 错误、解析错误都按零条目处理，触发备用通道
- 两条通道都为空时返回空列表，这不是错误
"""

import logging
from dataclasses import dataclass, field

from daily_playlist.models import RawItem, Source

from .base import BaseFetcher, FetchResult

logger = logging.getLogger(__name__)


@dataclass
class DualFetchResult:
    """
    双通道抓取结果
    Dual-source fetch result

    Attributes:
        items: 最终采用的条目
        source_name: 频道名称
        provenance: 产生条目的通道，两条通道都为空时为 None
        attempts: 按顺序记录的每次抓取尝试
        fallback_used: 是否调用了备用通道
    """
    items: list[RawItem] = field(default_factory=list)
    source_name: str = ""
    provenance: str | None = None
    attempts: list[FetchResult] = field(default_factory=list)
    fallback_used: bool = False

    @property
    def errors(self) -> list[str]:
        return [attempt.error for attempt in self.attempts if attempt.error]

    def __len__(self) -> int:
        return len(self.items)


class DualSourceFetcher:
    """
    双通道获取器
    Dual-Source Fetcher

    Attributes:
        fast: 快速通道 Fetcher
        fallback: 备用通道 Fetcher
    """

    def __init__(self, fast: BaseFetcher, fallback: BaseFetcher):
        self.fast = fast
        self.fallback = fallback

    def fetch(self, source: Source, channel_id: str | None = None) -> DualFetchResult:
        """
        获取频道条目，必要时回退
        Fetch a source's items, falling back when needed

        Args:
            source: 频道
            channel_id: 已解析的频道 ID，None 表示解析失败

        Returns:
            DualFetchResult，第一个产生 >=1 条目的通道胜出
            DualFetchResult; the first path yielding >= 1 item wins
        """
        result = DualFetchResult(source_name=source.name)

        if channel_id and self.fast.is_enabled():
            fast_result = self.fast.fetch(source, channel_id)
            result.attempts.append(fast_result)
            if fast_result.items:
                result.items = list(fast_result.items)
                result.provenance = fast_result.source_type
                return result
            logger.info(f"[FALLBACK] Fast path empty for {source.name}, trying fallback")
        else:
            logger.info(f"[FALLBACK] No channel_id for {source.name}, skipping fast path")

        if not self.fallback.is_enabled():
            return result

        fallback_result = self.fallback.fetch(source, channel_id)
        result.attempts.append(fallback_result)
        result.fallback_used = True
        if fallback_result.items:
            result.items = list(fallback_result.items)
            result.provenance = fallback_result.source_type
        else:
            logger.info(f"No videos found for {source.name} on either path")
        return result

"""
BaseFetcher - Fetcher 基类和 FetchResult 数据类
BaseFetcher - Base Fetcher Class and FetchResult Data Class

定义快速通道和备用通道 Fetcher 的统一接口和获取结果的数据结构。
Defines the unified interface for the fast and fallback fetch paths and the
data structure for fetch results.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from daily_playlist.models import RawItem, Source


@dataclass
class FetchResult:
    """
    获取结果数据类
    Fetch Result Data Class

    封装一次抓取的结果：条目列表、频道名称、抓取路径和错误信息。
    Encapsulates one fetch attempt: the items, the source name, the fetch
    path that produced them, and error details.

    Attributes:
        items: 获取的条目列表
               List of fetched items
        source_name: 频道显示名称
                     Display name of the source
        source_type: 抓取路径，'rss' 或 'ytdlp'
                     Fetch path, 'rss' or 'ytdlp'
        error: 错误信息（如有），获取成功时为 None
               Error message if any, None when fetch is successful

    Examples:
        >>> result = FetchResult(items=[], source_name='CNBC', source_type='rss',
        ...                      error='Connection timeout')
        >>> result.is_success()
        False
        >>> len(result)
        0
    """
    items: list[RawItem] = field(default_factory=list)
    source_name: str = ""
    source_type: str = ""
    error: str | None = None

    def is_success(self) -> bool:
        """
        检查获取是否成功
        Check if the fetch was successful
        """
        return self.error is None

    def __len__(self) -> int:
        return len(self.items)


class BaseFetcher(ABC):
    """
    Fetcher 抽象基类
    Abstract Base Class for Fetchers

    设计原则 Design Principles:
    - 统一接口：快速通道和备用通道都通过 fetch() 获取数据
    - 可配置性：通过 is_enabled() 支持启用/禁用
    - 容错性：fetch() 返回 FetchResult，错误信息通过 error 字段传递，不抛出异常
    """

    @abstractmethod
    def fetch(self, source: Source, channel_id: str | None = None) -> FetchResult:
        """
        获取频道的最新条目
        Fetch the most recent items of a source

        实现类应处理所有 I/O 异常，并通过 FetchResult.error 报告错误。
        Implementations handle all I/O exceptions and report them through
        FetchResult.error instead of raising.

        Args:
            source: 频道
            channel_id: 已解析的频道 ID（快速通道需要）
        """

    @abstractmethod
    def is_enabled(self) -> bool:
        """
        检查 Fetcher 是否启用
        Check if the Fetcher is enabled
        """

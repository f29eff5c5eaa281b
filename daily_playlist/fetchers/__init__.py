# Fetchers module - 数据获取模块
# 包含 BaseFetcher 基类、快速/备用通道 Fetcher、频道解析和双通道组合

from .base import BaseFetcher, FetchResult
from .channel_resolver import ChannelIdCache, ChannelResolver, channel_id_from_url
from .dual_source_fetcher import DualFetchResult, DualSourceFetcher
from .rss_fetcher import RSSFetcher, parse_upload_date
from .ytdlp_fetcher import DurationEnricher, YtDlpFetcher, channel_videos_url

__all__ = [
    # Base classes
    "BaseFetcher",
    "FetchResult",
    # Resolution
    "ChannelResolver",
    "ChannelIdCache",
    "channel_id_from_url",
    # Fast path
    "RSSFetcher",
    "parse_upload_date",
    # Fallback path
    "YtDlpFetcher",
    "DurationEnricher",
    "channel_videos_url",
    # Combined
    "DualSourceFetcher",
    "DualFetchResult",
]

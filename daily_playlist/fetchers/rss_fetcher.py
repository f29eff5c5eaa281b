"""
RSSFetcher - 频道 RSS 快速通道获取器
RSSFetcher - Channel RSS Feed Fetcher (fast path)

通过频道 ID 请求 YouTube 的 Atom 订阅源，低延迟获取最新视频。
Requests the YouTube Atom feed keyed by channel ID for low-latency retrieval
of the most recent videos.

订阅源不提供时长，条目的 duration 一律为 None（未知）。
The feed carries no duration, so every item has duration None (unknown).
"""

import logging
from datetime import datetime
from time import struct_time
from typing import Any

import feedparser
import requests

from daily_playlist.filters.keyword_filter import categorize_video
from daily_playlist.models import PROVENANCE_RSS, RawItem, Source, to_upload_date

from .base import BaseFetcher, FetchResult

logger = logging.getLogger(__name__)


class RSSFetcher(BaseFetcher):
    """
    频道 RSS 获取器
    Channel RSS Feed Fetcher

    Attributes:
        enabled: 是否启用此 Fetcher
        timeout: 请求超时时间（秒），保持较短
        user_agent: 请求 User-Agent
    """

    FEED_URL = "https://www.youtube.com/feeds/videos.xml"

    def __init__(self, config: dict[str, Any]):
        """
        初始化 RSS Fetcher
        Initialize RSS Fetcher

        Args:
            config: 配置字典，包含以下键：
                   - enabled: 是否启用 (bool, default=True)
                   - rss_timeout: 请求超时时间秒数 (int, default=10)
                   - user_agent: User-Agent (str, optional)
        """
        self.enabled: bool = config.get('enabled', True)
        self.timeout: int = config.get('rss_timeout', 10)
        self.user_agent: str | None = config.get('user_agent')

    def is_enabled(self) -> bool:
        return self.enabled

    def fetch(self, source: Source, channel_id: str | None = None) -> FetchResult:
        """
        获取频道订阅源中的视频
        Fetch videos from the channel feed

        超时、HTTP 错误和无法解析的订阅源都视为零条目，错误信息写入 error。
        Timeouts, HTTP errors and unparseable feeds all yield zero items, with
        the failure recorded in error.
        """
        if not self.is_enabled():
            return FetchResult(
                items=[],
                source_name=source.name,
                source_type=PROVENANCE_RSS,
                error='Fetcher is disabled'
            )

        if not channel_id:
            return FetchResult(
                items=[],
                source_name=source.name,
                source_type=PROVENANCE_RSS,
                error='No channel_id resolved'
            )

        try:
            logger.info(f"[RSS] Fetching feed for {source.name} ({channel_id})")
            headers = {'User-Agent': self.user_agent} if self.user_agent else None
            response = requests.get(
                self.FEED_URL,
                params={'channel_id': channel_id},
                headers=headers,
                timeout=self.timeout
            )
            response.raise_for_status()

            feed = feedparser.parse(response.content)
            if feed.bozo and not feed.entries:
                error_msg = f"Malformed feed for {source.name}: {feed.get('bozo_exception')}"
                logger.warning(error_msg)
                return FetchResult(
                    items=[],
                    source_name=source.name,
                    source_type=PROVENANCE_RSS,
                    error=error_msg
                )

            items: list[RawItem] = []
            for entry in feed.entries:
                item = self._entry_to_item(entry, source.name)
                if item:
                    items.append(item)

            logger.info(f"[RSS] {source.name}: fetched {len(items)} videos")
            return FetchResult(
                items=items,
                source_name=source.name,
                source_type=PROVENANCE_RSS
            )

        except requests.exceptions.Timeout:
            error_msg = f"RSS request timeout after {self.timeout}s for {source.name}"
            logger.warning(error_msg)
            return FetchResult(
                items=[],
                source_name=source.name,
                source_type=PROVENANCE_RSS,
                error=error_msg
            )
        except requests.exceptions.RequestException as e:
            error_msg = f"RSS request failed for {source.name}: {str(e)}"
            logger.warning(error_msg)
            return FetchResult(
                items=[],
                source_name=source.name,
                source_type=PROVENANCE_RSS,
                error=error_msg
            )

    def _entry_to_item(self, entry: Any, channel_name: str) -> RawItem | None:
        """
        将 feedparser 条目转换为 RawItem
        Convert a feedparser entry to a RawItem

        缺少视频 ID 的条目返回 None。
        Entries without a video ID yield None.
        """
        video_id = (entry.get('yt_videoid') or '').strip()
        if not video_id:
            link = entry.get('link', '')
            if 'v=' in link:
                video_id = link.split('v=', 1)[1].split('&', 1)[0]
        if not video_id:
            return None

        title = (entry.get('title') or '').strip()
        return RawItem(
            id=video_id,
            title=title,
            upload_date=parse_upload_date(entry),
            channel_name=channel_name,
            duration=None,
            provenance=PROVENANCE_RSS,
            published=entry.get('published', ''),
            thumbnail=f"https://i.ytimg.com/vi/{video_id}/mqdefault.jpg",
            category=categorize_video(title),
        )


def parse_upload_date(entry: Any) -> str:
    """
    解析条目的发布日期为 YYYYMMDD
    Parse an entry's publish date into YYYYMMDD

    依次尝试 published_parsed 和 updated_parsed，无法解析时返回空字符串。
    Tries published_parsed then updated_parsed; returns '' when neither parses.

    Examples:
        >>> parse_upload_date({'published_parsed': (2026, 2, 6, 14, 0, 0, 4, 37, 0)})
        '20260206'
        >>> parse_upload_date({})
        ''
    """
    time_struct: struct_time | tuple | None = (
        entry.get('published_parsed') or entry.get('updated_parsed')
    )
    if time_struct:
        try:
            return to_upload_date(datetime(*time_struct[:6]))
        except (ValueError, TypeError):
            pass
    return ""

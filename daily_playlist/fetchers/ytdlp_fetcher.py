"""
YtDlpFetcher - yt-dlp 备用通道获取器
YtDlpFetcher - yt-dlp Fallback Fetcher

直接按频道 URL 枚举最新视频，不依赖频道 ID。速度较慢但元数据更完整（含时长），
因此只取最近的少量视频。
Enumerates a channel's most recent videos directly from its URL, independent
of any resolved channel ID. Slower but richer (includes duration), so it is
capped to a small number of most-recent videos.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any

import yt_dlp
from yt_dlp.utils import DownloadError

from daily_playlist.filters.keyword_filter import categorize_video
from daily_playlist.models import PROVENANCE_YTDLP, RawItem, Source, to_upload_date

from .base import BaseFetcher, FetchResult

logger = logging.getLogger(__name__)

# 频道页面的标签后缀
CHANNEL_TAB_SUFFIXES = ('/videos', '/shorts', '/streams')


def channel_videos_url(url: str) -> str:
    """
    将频道 URL 规范化为视频标签页
    Point a channel URL at its videos tab

    Examples:
        >>> channel_videos_url('https://www.youtube.com/@CNBC/')
        'https://www.youtube.com/@CNBC/videos'
        >>> channel_videos_url('https://www.youtube.com/@CNBC/streams')
        'https://www.youtube.com/@CNBC/streams'
    """
    if url.endswith(CHANNEL_TAB_SUFFIXES):
        return url
    return url.rstrip('/') + '/videos'


def entry_upload_date(entry: dict[str, Any]) -> str:
    """
    从 yt-dlp 条目取 YYYYMMDD 日期，缺失时退回 timestamp
    Take the YYYYMMDD date of a yt-dlp entry, falling back to its timestamp

    Examples:
        >>> entry_upload_date({'upload_date': '20260206'})
        '20260206'
        >>> entry_upload_date({'timestamp': 1770386400})
        '20260206'
        >>> entry_upload_date({})
        ''
    """
    upload_date = entry.get('upload_date')
    if upload_date and len(str(upload_date)) == 8 and str(upload_date).isdigit():
        return str(upload_date)
    timestamp = entry.get('timestamp')
    if timestamp:
        try:
            return to_upload_date(datetime.fromtimestamp(int(timestamp), tz=timezone.utc))
        except (ValueError, OverflowError, OSError, TypeError):
            pass
    return ""


def _parse_duration(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


class YtDlpFetcher(BaseFetcher):
    """
    yt-dlp 备用通道获取器
    yt-dlp Fallback Fetcher

    Attributes:
        enabled: 是否启用此 Fetcher
        limit: 每个频道最多枚举的视频数
        timeout: 单次网络请求超时（秒）
    """

    def __init__(self, config: dict[str, Any]):
        """
        初始化 yt-dlp Fetcher
        Initialize yt-dlp Fetcher

        Args:
            config: 配置字典，包含以下键：
                   - enabled: 是否启用 (bool, default=True)
                   - fallback_limit: 最多枚举的视频数 (int, default=10)
                   - fallback_timeout: 网络超时秒数 (int, default=60)
        """
        self.enabled: bool = config.get('enabled', True)
        self.limit: int = config.get('fallback_limit', 10)
        self.timeout: int = config.get('fallback_timeout', 60)

    def is_enabled(self) -> bool:
        return self.enabled

    def _ydl_options(self) -> dict[str, Any]:
        return {
            'quiet': True,
            'no_warnings': True,
            'skip_download': True,
            'ignoreerrors': True,
            'playlistend': self.limit,
            'socket_timeout': self.timeout,
        }

    def fetch(self, source: Source, channel_id: str | None = None) -> FetchResult:
        """
        枚举频道最新视频
        Enumerate the channel's most recent videos

        channel_id 被忽略：备用通道只依赖频道 URL。
        channel_id is ignored: the fallback path relies on the URL only.
        """
        if not self.is_enabled():
            return FetchResult(
                items=[],
                source_name=source.name,
                source_type=PROVENANCE_YTDLP,
                error='Fetcher is disabled'
            )

        url = channel_videos_url(source.url)
        try:
            logger.info(f"[YT-DLP] Fallback fetching for {source.name}: {url}")
            with yt_dlp.YoutubeDL(self._ydl_options()) as ydl:
                info = ydl.extract_info(url, download=False)

            entries = list((info or {}).get('entries') or [])

            items: list[RawItem] = []
            for entry in entries[:self.limit]:
                item = self._entry_to_item(entry, source.name)
                if item:
                    items.append(item)

            logger.info(f"[YT-DLP] {source.name}: fetched {len(items)} videos")
            return FetchResult(
                items=items,
                source_name=source.name,
                source_type=PROVENANCE_YTDLP
            )

        except DownloadError as e:
            error_msg = f"yt-dlp enumeration failed for {source.name}: {str(e)}"
            logger.warning(error_msg)
            return FetchResult(
                items=[],
                source_name=source.name,
                source_type=PROVENANCE_YTDLP,
                error=error_msg
            )
        except Exception as e:
            error_msg = f"yt-dlp fetcher error for {source.name}: {str(e)}"
            logger.error(error_msg)
            return FetchResult(
                items=[],
                source_name=source.name,
                source_type=PROVENANCE_YTDLP,
                error=error_msg
            )

    def _entry_to_item(self, entry: dict[str, Any] | None, channel_name: str) -> RawItem | None:
        if not entry or not entry.get('id'):
            return None

        video_id = str(entry['id'])
        title = (entry.get('title') or '').strip()
        thumbnail = entry.get('thumbnail') or f"https://i.ytimg.com/vi/{video_id}/mqdefault.jpg"
        return RawItem(
            id=video_id,
            title=title,
            upload_date=entry_upload_date(entry),
            channel_name=channel_name,
            duration=_parse_duration(entry.get('duration')),
            provenance=PROVENANCE_YTDLP,
            published=str(entry.get('upload_date') or ''),
            description=entry.get('description') or '',
            thumbnail=thumbnail,
            category=categorize_video(title),
        )


class DurationEnricher:
    """
    时长补全器
    Duration Enricher

    为时长未知的条目逐个查询 yt-dlp；查询失败的条目保持未知，不做猜测。
    Looks up each unknown-duration item through yt-dlp; failed lookups stay
    unknown and are never guessed.
    """

    def __init__(self, config: dict[str, Any]):
        self.timeout: int = config.get('fallback_timeout', 60)

    def enrich(self, items: list[RawItem], cancel_event: threading.Event | None = None) -> int:
        """
        就地补全时长，返回补全的条目数
        Fill durations in place; return how many items were enriched

        单个条目查询失败只影响该条目；cancel_event 置位后停止后续查询。
        A failed lookup only affects its own item; lookups stop once
        cancel_event is set.
        """
        need_duration = [item for item in items if item.duration is None]
        if not need_duration:
            return 0

        logger.info(f"[DURATION] Fetching durations for {len(need_duration)} videos via yt-dlp")
        options = {
            'quiet': True,
            'no_warnings': True,
            'skip_download': True,
            'socket_timeout': self.timeout,
        }
        enriched = 0
        with yt_dlp.YoutubeDL(options) as ydl:
            for item in need_duration:
                if cancel_event is not None and cancel_event.is_set():
                    logger.info("[DURATION] Run cancelled, skipping remaining lookups")
                    break
                try:
                    info = ydl.extract_info(item.url, download=False)
                except DownloadError as e:
                    logger.warning(f"[DURATION] Lookup failed for {item.id}: {e}")
                    continue
                except Exception as e:
                    logger.error(f"[DURATION] Unexpected error looking up {item.id}: {e}")
                    continue
                duration = _parse_duration((info or {}).get('duration'))
                if duration is not None:
                    item.duration = duration
                    enriched += 1

        logger.info(f"[DURATION] Enriched {enriched}/{len(need_duration)} videos with duration data")
        return enriched

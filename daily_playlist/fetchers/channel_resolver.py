"""
ChannelResolver - 频道 ID 解析器
ChannelResolver - Channel ID Resolver

将频道 URL（如 https://www.youtube.com/@CNBC）解析为稳定的频道 ID。
解析失败是正常结果：返回 None，不抛出异常，也不重试。
Maps a channel URL (e.g. https://www.youtube.com/@CNBC) to its stable
channel ID. Failure is a normal outcome: None is returned, nothing is
raised, and nothing is retried.

解析成功的 ID 可写入 JSON 缓存，供后续运行复用；失败永远不缓存。
Resolved IDs can be kept in a JSON cache for later runs; failures are never
cached.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

import yt_dlp
from yt_dlp.utils import DownloadError

from daily_playlist.models import Source

logger = logging.getLogger(__name__)

# 频道 ID: UC + 22 位 base64url 字符
CHANNEL_ID_PATTERN = re.compile(r'/channel/(UC[\w-]{22})(?:[/?#]|$)')


def channel_id_from_url(url: str) -> str | None:
    """
    从 URL 直接提取频道 ID（无网络请求）
    Extract a channel ID embedded in the URL, without any network call

    Examples:
        >>> channel_id_from_url('https://www.youtube.com/channel/UCvJJ_dzjViJCoLf5uKUTwoA/videos')
        'UCvJJ_dzjViJCoLf5uKUTwoA'
        >>> channel_id_from_url('https://www.youtube.com/@CNBC') is None
        True
    """
    match = CHANNEL_ID_PATTERN.search(url or '')
    return match.group(1) if match else None


class ChannelResolver:
    """
    频道 ID 解析器
    Channel ID Resolver

    Attributes:
        timeout: 网络超时（秒）
    """

    def __init__(self, config: dict[str, Any] | None = None):
        config = config or {}
        self.timeout: int = config.get('fallback_timeout', 60)

    def resolve(self, url: str) -> str | None:
        """
        解析频道 URL
        Resolve a channel URL

        Returns:
            频道 ID，失败时返回 None
            The channel ID, or None on failure
        """
        embedded = channel_id_from_url(url)
        if embedded:
            return embedded

        options = {
            'quiet': True,
            'no_warnings': True,
            'skip_download': True,
            'extract_flat': True,
            'playlistend': 1,
            'socket_timeout': self.timeout,
        }
        try:
            with yt_dlp.YoutubeDL(options) as ydl:
                info = ydl.extract_info(url, download=False)
        except DownloadError as e:
            logger.warning(f"Could not resolve channel_id for {url}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Channel resolution error for {url}: {e}")
            return None

        channel_id = (info or {}).get('channel_id')
        if not channel_id:
            logger.warning(f"Could not resolve channel_id for {url}: no channel_id in metadata")
            return None
        return str(channel_id)


class ChannelIdCache:
    """
    频道 ID 缓存（JSON 文件，按频道 URL 索引）
    Channel ID cache (JSON file keyed by source URL)
    """

    def __init__(self, path: str | None):
        self.path = Path(path) if path else None
        self._ids: dict[str, str] = {}
        self._dirty = False
        self._load()

    def _load(self) -> None:
        if not self.path or not self.path.exists():
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable channel cache {self.path}: {e}")
            return
        if isinstance(data, dict):
            self._ids = {str(k): str(v) for k, v in data.items() if v}

    def get(self, source: Source) -> str | None:
        """配置中的 ID 优先于缓存 / Configured IDs win over cached ones"""
        return source.channel_id or self._ids.get(source.url)

    def update(self, resolved: dict[str, str]) -> None:
        for url, channel_id in resolved.items():
            if self._ids.get(url) != channel_id:
                self._ids[url] = channel_id
                self._dirty = True

    def save(self) -> bool:
        """
        写回缓存文件，无变化时跳过
        Write the cache back; skipped when nothing changed
        """
        if not self.path or not self._dirty:
            return False
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(self._ids, f, indent=2, sort_keys=True)
        self._dirty = False
        logger.info(f"Cached {len(self._ids)} channel IDs to {self.path}")
        return True

    def __len__(self) -> int:
        return len(self._ids)

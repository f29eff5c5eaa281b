"""
RSS 快速通道获取器测试
RSS Fast-Path Fetcher Tests
"""

from unittest.mock import MagicMock, patch

import requests

from daily_playlist.fetchers.rss_fetcher import RSSFetcher, parse_upload_date
from daily_playlist.models import Source

CHANNEL_ID = 'UCvJJ_dzjViJCoLf5uKUTwoA'

SAMPLE_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015"
      xmlns:media="http://search.yahoo.com/mrss/"
      xmlns="http://www.w3.org/2005/Atom">
  <title>CNBC Television</title>
  <yt:channelId>UCvJJ_dzjViJCoLf5uKUTwoA</yt:channelId>
  <entry>
    <id>yt:video:abc123DEF45</id>
    <yt:videoId>abc123DEF45</yt:videoId>
    <yt:channelId>UCvJJ_dzjViJCoLf5uKUTwoA</yt:channelId>
    <title>Fed rate decision: Powell holds rates steady</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v=abc123DEF45"/>
    <published>2026-02-07T14:00:00+00:00</published>
    <updated>2026-02-07T15:00:00+00:00</updated>
  </entry>
  <entry>
    <id>yt:video:xyz987ZYX65</id>
    <yt:videoId>xyz987ZYX65</yt:videoId>
    <title>Pasta carbonara recipe #shorts</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v=xyz987ZYX65"/>
    <published>2026-02-05T09:30:00+00:00</published>
  </entry>
</feed>
"""

EMPTY_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom"><title>Quiet channel</title></feed>
"""


def make_response(content: bytes) -> MagicMock:
    response = MagicMock()
    response.content = content
    response.raise_for_status.return_value = None
    return response


class TestRSSFetcher:
    """测试 RSSFetcher"""

    def setup_method(self):
        self.fetcher = RSSFetcher({'rss_timeout': 10, 'user_agent': 'test-agent'})
        self.source = Source(name='CNBC Television', url='https://www.youtube.com/@CNBCtelevision')

    def test_parses_feed_entries(self):
        """测试解析订阅源条目"""
        with patch('daily_playlist.fetchers.rss_fetcher.requests.get',
                   return_value=make_response(SAMPLE_FEED)) as mock_get:
            result = self.fetcher.fetch(self.source, CHANNEL_ID)

        assert result.is_success()
        assert result.source_type == 'rss'
        assert [item.id for item in result.items] == ['abc123DEF45', 'xyz987ZYX65']

        first = result.items[0]
        assert first.title == 'Fed rate decision: Powell holds rates steady'
        assert first.upload_date == '20260207'
        assert first.channel_name == 'CNBC Television'
        assert first.duration is None
        assert first.provenance == 'rss'
        assert first.category == 'finance'
        assert first.url == 'https://www.youtube.com/watch?v=abc123DEF45'

        mock_get.assert_called_once()
        _, kwargs = mock_get.call_args
        assert kwargs['params'] == {'channel_id': CHANNEL_ID}
        assert kwargs['timeout'] == 10
        assert kwargs['headers'] == {'User-Agent': 'test-agent'}

    def test_empty_feed_is_not_an_error(self):
        with patch('daily_playlist.fetchers.rss_fetcher.requests.get',
                   return_value=make_response(EMPTY_FEED)):
            result = self.fetcher.fetch(self.source, CHANNEL_ID)

        assert result.items == []
        assert result.is_success()

    def test_timeout_yields_zero_items(self):
        """测试超时返回零条目和错误信息"""
        with patch('daily_playlist.fetchers.rss_fetcher.requests.get',
                   side_effect=requests.exceptions.Timeout()):
            result = self.fetcher.fetch(self.source, CHANNEL_ID)

        assert result.items == []
        assert 'timeout' in result.error

    def test_http_error_yields_zero_items(self):
        response = make_response(b'')
        response.raise_for_status.side_effect = requests.exceptions.HTTPError('404 Not Found')
        with patch('daily_playlist.fetchers.rss_fetcher.requests.get', return_value=response):
            result = self.fetcher.fetch(self.source, CHANNEL_ID)

        assert result.items == []
        assert '404' in result.error

    def test_malformed_feed_yields_zero_items(self):
        with patch('daily_playlist.fetchers.rss_fetcher.requests.get',
                   return_value=make_response(b'<html><body>not a feed')):
            result = self.fetcher.fetch(self.source, CHANNEL_ID)

        assert result.items == []
        assert not result.is_success()

    def test_missing_channel_id_skips_request(self):
        with patch('daily_playlist.fetchers.rss_fetcher.requests.get') as mock_get:
            result = self.fetcher.fetch(self.source, None)

        mock_get.assert_not_called()
        assert result.items == []
        assert result.error == 'No channel_id resolved'

    def test_disabled(self):
        fetcher = RSSFetcher({'enabled': False})
        assert not fetcher.is_enabled()
        assert fetcher.fetch(self.source, CHANNEL_ID).error == 'Fetcher is disabled'


class TestParseUploadDate:
    """测试发布日期解析"""

    def test_published_parsed(self):
        assert parse_upload_date({'published_parsed': (2026, 2, 6, 23, 59, 0, 4, 37, 0)}) == '20260206'

    def test_falls_back_to_updated(self):
        assert parse_upload_date({'updated_parsed': (2026, 1, 31, 0, 0, 0, 5, 31, 0)}) == '20260131'

    def test_missing(self):
        assert parse_upload_date({}) == ''
        assert parse_upload_date({'published_parsed': None}) == ''

"""
时效与格式过滤器测试
Recency & Format Filter Tests
"""

from datetime import datetime

from hypothesis import given, settings, strategies as st

from daily_playlist.filters.recency_format_filter import RecencyFormatFilter, cutoff_date_key
from daily_playlist.models import CuratedItem, RawItem, Source

# 2026-02-08 09:30 - 48h => 截止日期 2026-02-06
NOW = datetime(2026, 2, 8, 9, 30)
STRICT = Source(name='News', url='https://www.youtube.com/@news', include_shorts=False)
LENIENT = Source(name='Cooking', url='https://www.youtube.com/@cooking', include_shorts=True)


def make_item(item_id: str, date: str = '20260207', duration: int | None = None, title: str = 'Some video') -> RawItem:
    return RawItem(id=item_id, title=title, upload_date=date, channel_name='News', duration=duration)


def run_filter(f: RecencyFormatFilter, items: list[RawItem], source: Source):
    """按编排器的顺序先时效后格式 / Recency then format, in the orchestrator's order"""
    recent, too_old = f.split_recent(items, NOW)
    passed, short_form = f.split_format(recent, source)
    return passed, too_old, short_form


class TestRecencyRule:
    """测试时效规则"""

    def test_cutoff_truncated_to_day(self):
        assert cutoff_date_key(NOW, 48) == '20260206'
        assert cutoff_date_key(datetime(2026, 2, 8, 0, 0), 48) == '20260206'

    def test_item_on_cutoff_date_passes(self):
        recent, too_old = RecencyFormatFilter().split_recent([make_item('a', '20260206')], NOW)
        assert [i.id for i in recent] == ['a']
        assert too_old == []

    def test_item_one_day_before_cutoff_fails(self):
        recent, too_old = RecencyFormatFilter().split_recent([make_item('a', '20260205')], NOW)
        assert recent == []
        assert [i.id for i in too_old] == ['a']

    def test_missing_date_fails(self):
        _, too_old = RecencyFormatFilter().split_recent([make_item('a', '')], NOW)
        assert len(too_old) == 1

    def test_custom_lookback(self):
        recent, _ = RecencyFormatFilter(lookback_hours=24).split_recent(
            [make_item('a', '20260207'), make_item('b', '20260206')], NOW
        )
        assert [i.id for i in recent] == ['a']


class TestFormatRule:
    """测试格式规则"""

    def test_short_duration_excluded(self):
        passed, short_form = RecencyFormatFilter().split_format([make_item('a', duration=45)], STRICT)
        assert passed == []
        assert len(short_form) == 1

    def test_short_duration_allowed_when_source_opts_in(self):
        passed, _ = RecencyFormatFilter().split_format([make_item('a', duration=45)], LENIENT)
        assert [i.id for i in passed] == ['a']

    def test_unknown_duration_without_marker_included(self):
        passed, _ = RecencyFormatFilter().split_format([make_item('a', duration=None)], STRICT)
        assert [i.id for i in passed] == ['a']

    def test_marker_case_insensitive(self):
        items = [
            make_item('a', title='Quick tip #Shorts'),
            make_item('b', title='Full breakdown', duration=900),
        ]
        passed, short_form = RecencyFormatFilter().split_format(items, STRICT)
        assert [i.id for i in passed] == ['b']
        assert [i.id for i in short_form] == ['a']

    def test_exactly_sixty_seconds_passes(self):
        passed, _ = RecencyFormatFilter().split_format([make_item('a', duration=60)], STRICT)
        assert len(passed) == 1

    def test_custom_markers(self):
        f = RecencyFormatFilter(markers=['#shorts', '#reels'])
        assert f.is_short_form(make_item('a', title='Dance #REELS'))


class TestDropAttribution:
    """测试丢弃计数归因：先时效后格式"""

    def test_old_short_counted_as_recency(self):
        items = [
            make_item('old_short', '20260201', duration=30),
            make_item('new_short', '20260207', duration=30),
            make_item('keep', '20260207', duration=600),
        ]
        passed, too_old, short_form = run_filter(RecencyFormatFilter(), items, STRICT)

        assert [i.id for i in too_old] == ['old_short']
        assert [i.id for i in short_form] == ['new_short']
        assert [i.id for i in passed] == ['keep']
        assert all(isinstance(i, CuratedItem) for i in passed)


# ============================================================================
# Property-Based Tests (属性测试)
# ============================================================================

date_strategy = st.dates(min_value=datetime(2026, 1, 25).date(), max_value=datetime(2026, 2, 10).date())
item_strategy = st.builds(
    lambda i, d, dur, marker: make_item(
        f'v{i}', d.strftime('%Y%m%d'), dur, 'Clip #shorts' if marker else 'Clip'
    ),
    st.integers(min_value=0, max_value=10_000),
    date_strategy,
    st.one_of(st.none(), st.integers(min_value=1, max_value=3600)),
    st.booleans(),
)


@given(st.lists(item_strategy, max_size=20), st.booleans())
@settings(max_examples=100)
def test_property_every_item_accounted_for(items, include_shorts):
    """每个条目要么通过，要么恰好被一条规则丢弃"""
    source = LENIENT if include_shorts else STRICT
    passed, too_old, short_form = run_filter(RecencyFormatFilter(), items, source)

    assert len(passed) + len(too_old) + len(short_form) == len(items)
    for item in passed:
        assert item.upload_date >= '20260206'
        if not include_shorts:
            assert item.duration is None or item.duration >= 60
            assert '#shorts' not in item.title.lower()
    if include_shorts:
        assert short_form == []

"""
关键词过滤与分类测试
Keyword Filter and Categorisation Tests
"""

from daily_playlist.filters.keyword_filter import KeywordFilter, categorize_video
from daily_playlist.models import RawItem


def make_item(item_id: str, title: str, description: str = '', category: str = 'other') -> RawItem:
    return RawItem(id=item_id, title=title, upload_date='20260207', channel_name='C',
                   description=description, category=category)


class TestCategorizeVideo:
    """测试标题分类"""

    def test_categories(self):
        assert categorize_video('Fed holds rates, stocks rally') == 'finance'
        assert categorize_video('NBA playoff highlights') == 'sports'
        assert categorize_video('Easy weeknight dinner recipe') == 'cooking'
        assert categorize_video('New smartphone review') == 'tech'
        assert categorize_video('Senate votes on border bill') == 'news'
        assert categorize_video('Weekend vlog') == 'other'

    def test_first_category_wins(self):
        # 同时命中 finance 与 tech 时按顺序取 finance
        assert categorize_video('Apple stock after earnings') == 'finance'

    def test_empty_title(self):
        assert categorize_video('') == 'other'


class TestKeywordFilter:
    """测试加权关键词过滤"""

    def test_inactive_keeps_everything(self):
        items = [make_item('a', 'anything')]
        f = KeywordFilter({})

        assert not f.active
        assert f.apply(items).kept == items

    def test_neutral_kept(self):
        decision = KeywordFilter({'block_list': ['giveaway']}).score(make_item('a', 'Market wrap'))
        assert decision.kept
        assert decision.reason == 'neutral'

    def test_block_outweighs_allow(self):
        f = KeywordFilter({'allow_list': ['market'], 'block_list': ['giveaway']})
        result = f.apply([
            make_item('a', 'Market giveaway special'),
            make_item('b', 'Market outlook'),
        ])

        assert [i.id for i in result.kept] == ['b']
        assert result.dropped_count == 1
        assert result.reasons['a'].startswith('blocked:')

    def test_description_is_scored(self):
        f = KeywordFilter({'block_list': ['sponsored']})
        result = f.apply([make_item('a', 'Review', description='This video is SPONSORED by X')])
        assert result.dropped_count == 1

    def test_category_rules_change_weights(self):
        config = {
            'allow_list': ['market'],
            'block_list': ['giveaway'],
            'category_rules': {'finance': {'allow_weight': 2.0, 'block_weight': 1.0}},
        }
        f = KeywordFilter(config)

        finance = f.score(make_item('a', 'Market giveaway', category='finance'))
        other = f.score(make_item('b', 'Market giveaway', category='other'))

        assert finance.kept and finance.score == 1.0
        assert not other.kept and other.score == -0.5

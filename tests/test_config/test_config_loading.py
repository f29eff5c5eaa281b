"""
配置加载测试
Configuration Loading Tests

测试 YAML 加载、环境变量替换、默认值合并和频道列表校验。
Tests YAML loading, environment substitution, default merging and source
list validation.
"""

import pytest
import yaml
from hypothesis import given, settings, strategies as st

from daily_playlist.config import (
    DEFAULT_CONFIG,
    ConfigError,
    _deep_merge,
    apply_defaults,
    get_config_value,
    get_curation_config,
    load_config,
    load_config_with_defaults,
    load_generic_terms,
    load_sources,
    replace_env_vars,
)


def write_yaml(tmp_path, data) -> str:
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.safe_dump(data), encoding='utf-8')
    return str(path)


class TestLoadConfig:
    """测试配置文件加载"""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / 'nope.yaml'))

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text('', encoding='utf-8')
        assert load_config(str(path)) == {}

    def test_non_mapping_root(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(write_yaml(tmp_path, ['a', 'b']))

    def test_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv('PLAYLIST_OUT', '/srv/playlists')
        config = load_config(write_yaml(tmp_path, {
            'storage': {'output_dir': '${PLAYLIST_OUT}', 'seen_db_path': '${PLAYLIST_DB:data/seen.db}'},
        }))
        assert config['storage']['output_dir'] == '/srv/playlists'
        assert config['storage']['seen_db_path'] == 'data/seen.db'

    def test_with_defaults(self, tmp_path):
        config = load_config_with_defaults(write_yaml(tmp_path, {'curation': {'lookback_hours': 24}}))
        assert config['curation']['lookback_hours'] == 24
        assert config['curation']['similarity_threshold'] == 0.35
        assert config['fetch']['fallback_limit'] == 10
        assert config['schedule']['time'] == '07:00'


class TestAccessors:
    """测试配置访问函数"""

    def test_get_config_value(self):
        config = {'a': {'b': {'c': 1}}}
        assert get_config_value(config, 'a.b.c') == 1
        assert get_config_value(config, 'a.x', 'default') == 'default'

    def test_curation_section_defaults(self):
        curation = get_curation_config({'curation': {'max_workers': 8}})
        assert curation['max_workers'] == 8
        assert curation['min_short_duration'] == 60
        assert curation['short_form_markers'] == ['#shorts']

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigError):
            get_curation_config({'curation': ['not', 'a', 'dict']})

    def test_replace_env_vars_nested(self, monkeypatch):
        monkeypatch.setenv('CHANNEL_URL', 'https://www.youtube.com/@CNBC')
        assert replace_env_vars({'sources': [{'url': '${CHANNEL_URL}'}]}) == {
            'sources': [{'url': 'https://www.youtube.com/@CNBC'}]
        }


class TestLoadSources:
    """测试频道列表读取"""

    def test_ordered_sources(self):
        sources = load_sources({'sources': [
            {'name': 'CNBC', 'url': 'https://www.youtube.com/@CNBC'},
            {'name': ' Chef ', 'url': 'https://www.youtube.com/@chef', 'include_shorts': True,
             'channel_id': 'UCchef'},
        ]})
        assert [s.name for s in sources] == ['CNBC', 'Chef']
        assert sources[1].include_shorts is True
        assert sources[1].channel_id == 'UCchef'
        assert sources[0].channel_id is None

    def test_missing_sources(self):
        assert load_sources({}) == []

    @pytest.mark.parametrize('sources', [
        'not a list',
        ['not a mapping'],
        [{'name': 'No URL'}],
        [{'url': 'https://www.youtube.com/@noname'}],
    ])
    def test_malformed_sources(self, sources):
        with pytest.raises(ConfigError):
            load_sources({'sources': sources})

    def test_generic_terms(self):
        assert load_generic_terms({'filters': {'allow_list': ['market']}}) == ['market']
        assert load_generic_terms({'curation': {'generic_terms': ['fed']},
                                   'filters': {'allow_list': ['market']}}) == ['fed']
        assert load_generic_terms({}) == []
        with pytest.raises(ConfigError):
            load_generic_terms({'curation': {'generic_terms': 'fed'}})


# ============================================================================
# Property-Based Tests (属性测试)
# ============================================================================

config_key_strategy = st.from_regex(r"^[a-z][a-z0-9_]{0,10}$", fullmatch=True)
config_value_strategy = st.one_of(
    st.integers(min_value=-1000, max_value=1000),
    st.booleans(),
    st.text(alphabet='abcdefghijklmnopqrstuvwxyz', max_size=10),
)


@given(st.dictionaries(config_key_strategy, config_value_strategy, max_size=5))
@settings(max_examples=100)
def test_property_curation_overrides_preserved(overrides):
    """用户值覆盖默认值，其余键保持默认"""
    config = apply_defaults({'curation': overrides})

    for key, value in overrides.items():
        assert config['curation'][key] == value
    for key, value in DEFAULT_CONFIG['curation'].items():
        if key not in overrides:
            assert config['curation'][key] == value


@given(
    st.dictionaries(config_key_strategy, config_value_strategy, max_size=5),
    st.dictionaries(config_key_strategy, config_value_strategy, max_size=5),
)
@settings(max_examples=100)
def test_property_deep_merge_does_not_mutate(base, override):
    """深度合并不修改输入"""
    base_copy, override_copy = dict(base), dict(override)
    merged = _deep_merge(base, override)

    assert base == base_copy
    assert override == override_copy
    assert set(merged) == set(base) | set(override)

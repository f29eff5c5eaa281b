"""
配置加载模块
Config Loading Module

实现YAML配置文件加载、环境变量替换和默认值合并。
Implements YAML config file loading, environment variable substitution and defaults.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from daily_playlist.models import Source


class ConfigError(ValueError):
    """配置结构错误 / Malformed configuration"""


def load_env_file(env_path: str | None = None) -> bool:
    """
    加载.env文件中的环境变量。
    Load environment variables from .env file.

    Args:
        env_path: .env文件路径，默认为None（自动查找）
                  Path to .env file, defaults to None (auto-discover)

    Returns:
        是否成功加载了.env文件
        Whether .env file was successfully loaded
    """
    if env_path:
        env_file = Path(env_path)
        if env_file.exists():
            load_dotenv(env_file)
            return True
        return False

    return load_dotenv()


def replace_env_vars(value: Any) -> Any:
    """
    递归替换配置值中的环境变量占位符。
    Recursively substitute environment variable placeholders in config values.

    支持 ${VAR_NAME} 和 ${VAR_NAME:default} 格式。
    Supports ${VAR_NAME} and ${VAR_NAME:default} formats.

    Examples:
        >>> os.environ['TEST_VAR'] = 'test_value'
        >>> replace_env_vars('${TEST_VAR}')
        'test_value'
        >>> replace_env_vars({'key': '${TEST_VAR}'})
        {'key': 'test_value'}
        >>> replace_env_vars('${NONEXISTENT_VAR:fallback}')
        'fallback'
    """
    if isinstance(value, str):
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ''
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replacer, value)

    elif isinstance(value, dict):
        return {k: replace_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [replace_env_vars(item) for item in value]

    return value


def load_config(config_path: str = "config.yaml", env_path: str | None = None) -> dict:
    """
    加载YAML配置文件并替换环境变量。
    Load YAML config file and substitute environment variables.

    Args:
        config_path: 配置文件路径，默认为 "config.yaml"
        env_path: .env文件路径，默认为None（自动查找）

    Returns:
        解析并替换环境变量后的配置字典
        Parsed config dict with environment variables substituted

    Raises:
        FileNotFoundError: 配置文件不存在
        yaml.YAMLError: YAML解析错误
    """
    load_env_file(env_path)

    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_file, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ConfigError(f"Config root must be a mapping: {config_path}")

    return replace_env_vars(config)


def get_config_value(config: dict, key_path: str, default: Any = None) -> Any:
    """
    通过点分隔的路径获取配置值。
    Get config value by dot-separated path.

    Examples:
        >>> config = {'curation': {'lookback_hours': 24}}
        >>> get_config_value(config, 'curation.lookback_hours')
        24
        >>> get_config_value(config, 'curation.missing', 'default')
        'default'
    """
    keys = key_path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


# 默认配置值
# Default Configuration Values
DEFAULT_CONFIG: dict[str, Any] = {
    'curation': {
        'lookback_hours': 48,
        'similarity_threshold': 0.35,
        'min_short_duration': 60,
        'short_form_markers': ['#shorts'],
        'max_workers': 4,
        'source_timeout': 120,
        'enrich_durations': False,
        'cluster': True,
    },
    'fetch': {
        'rss_timeout': 10,
        'fallback_timeout': 60,
        'fallback_limit': 10,
        'user_agent': 'Mozilla/5.0 (compatible; daily-playlist/1.0)',
    },
    'filters': {
        'allow_list': [],
        'block_list': [],
        'category_rules': {},
    },
    'storage': {
        'seen_db_path': 'data/seen.db',
        'channel_cache_path': 'data/channel_ids.json',
        'output_dir': 'output',
    },
    'schedule': {
        'time': '07:00',
    },
    'sources': [],
}


def _deep_merge(base: dict, override: dict) -> dict:
    """
    深度合并两个字典，override中的值覆盖base中的值。
    Deep merge two dictionaries, values in override take precedence over base.

    Examples:
        >>> base = {'a': {'b': 1, 'c': 2}}
        >>> override = {'a': {'b': 10}}
        >>> _deep_merge(base, override)
        {'a': {'b': 10, 'c': 2}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def apply_defaults(config: dict) -> dict:
    """
    将默认配置应用到用户配置中，缺失的配置项使用默认值。
    Apply default configuration to user config, missing items use defaults.

    Examples:
        >>> result = apply_defaults({'curation': {'lookback_hours': 24}})
        >>> result['curation']['lookback_hours']
        24
        >>> result['curation']['similarity_threshold']
        0.35
    """
    return _deep_merge(DEFAULT_CONFIG, config)


def _section(config: dict, name: str) -> dict:
    user_config = config.get(name) or {}
    if not isinstance(user_config, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return _deep_merge(DEFAULT_CONFIG[name], user_config)


def get_curation_config(config: dict) -> dict:
    """获取策展参数（含默认值） / Curation parameters with defaults"""
    return _section(config, 'curation')


def get_fetch_config(config: dict) -> dict:
    """获取抓取参数（含默认值） / Fetch parameters with defaults"""
    return _section(config, 'fetch')


def get_filters_config(config: dict) -> dict:
    """获取关键词过滤配置（含默认值） / Keyword filter config with defaults"""
    return _section(config, 'filters')


def get_storage_config(config: dict) -> dict:
    """获取存储路径配置（含默认值） / Storage paths with defaults"""
    return _section(config, 'storage')


def load_sources(config: dict) -> list[Source]:
    """
    从配置中读取频道列表
    Read the ordered source list from config

    Raises:
        ConfigError: 条目缺少 name 或 url
                     An entry lacks name or url

    Examples:
        >>> sources = load_sources({'sources': [{'name': 'A', 'url': 'https://www.youtube.com/@a'}]})
        >>> sources[0].name, sources[0].include_shorts
        ('A', False)
    """
    raw_sources = config.get('sources') or []
    if not isinstance(raw_sources, list):
        raise ConfigError("'sources' must be a list")

    sources: list[Source] = []
    for index, entry in enumerate(raw_sources):
        if not isinstance(entry, dict):
            raise ConfigError(f"Source #{index} must be a mapping, got {type(entry).__name__}")
        name = str(entry.get('name') or '').strip()
        url = str(entry.get('url') or '').strip()
        if not name or not url:
            raise ConfigError(f"Source #{index} requires both 'name' and 'url'")
        sources.append(Source.from_dict({**entry, 'name': name, 'url': url}))
    return sources


def load_generic_terms(config: dict) -> list[str]:
    """
    读取聚类用的通用词列表
    Read the generic-term list used by topic clustering

    未显式配置 curation.generic_terms 时退回 filters.allow_list。
    Falls back to filters.allow_list when curation.generic_terms is unset.
    """
    terms = get_config_value(config, 'curation.generic_terms')
    if terms is None:
        terms = get_config_value(config, 'filters.allow_list', [])
    if not isinstance(terms, list):
        raise ConfigError("Generic terms must be a list of strings")
    return [str(term) for term in terms]


def load_config_with_defaults(config_path: str = "config.yaml", env_path: str | None = None) -> dict:
    """
    加载配置文件并应用默认值。
    Load configuration file and apply defaults.
    """
    config = load_config(config_path, env_path)
    return apply_defaults(config)

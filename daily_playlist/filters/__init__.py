# Filters module - 过滤器模块
# 包含时效与格式过滤器、加权关键词过滤器和标题分类

from .keyword_filter import (
    KeywordFilter,
    KeywordFilterResult,
    categorize_video,
)
from .recency_format_filter import (
    RecencyFormatFilter,
    cutoff_date_key,
)

__all__ = [
    "KeywordFilter",
    "KeywordFilterResult",
    "categorize_video",
    "RecencyFormatFilter",
    "cutoff_date_key",
]

"""
关键词过滤与分类模块
Keyword Filter and Categorisation Module

基于加权关键词打分决定保留或丢弃条目，并按标题关键词给条目分类。
Keeps or drops items by a weighted keyword score, and categorises items by
title keywords.

打分 Score = allow_hits * allow_weight - block_hits * block_weight
- 没有命中任何词：保留（neutral）
- score >= threshold：保留
- 否则丢弃
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from daily_playlist.models import RawItem

logger = logging.getLogger(__name__)


# 按顺序匹配，先命中者胜出
CATEGORY_KEYWORDS: list[tuple[str, list[str]]] = [
    ('finance', [
        'stock', 'market', 'invest', 'trading', 'crypto', 'bitcoin', 'economy',
        'fed', 'inflation', 'earnings', 'dividend', 'finance', 'money', 'banking',
        'treasury', 'bonds', 'etf', 'nasdaq', 's&p', 'dow', 'forex', 'portfolio',
        'valuation', 'hedge', 'yield',
    ]),
    ('sports', [
        'game', 'score', 'nfl', 'nba', 'mlb', 'nhl', 'soccer', 'football',
        'basketball', 'baseball', 'hockey', 'tennis', 'golf', 'olympics',
        'playoff', 'championship', 'super bowl', 'world cup', 'athlete', 'espn',
    ]),
    ('cooking', [
        'recipe', 'cook', 'bake', 'food', 'kitchen', 'meal', 'dinner', 'lunch',
        'breakfast', 'chef', 'ingredient', 'cuisine', 'grill', 'roast', 'fry',
    ]),
    ('tech', [
        'tech', 'software', 'ai', 'artificial intelligence', 'machine learning',
        'coding', 'programming', 'gadget', 'smartphone', 'computer', 'apple',
        'google', 'microsoft', 'startup', 'app', 'developer',
    ]),
    ('news', [
        'breaking', 'news', 'politics', 'election', 'president', 'congress',
        'senate', 'government', 'policy', 'law', 'court', 'supreme', 'ukraine',
        'china', 'war', 'crisis',
    ]),
]

DEFAULT_CATEGORY_RULE: dict[str, float] = {
    'allow_weight': 1.0,
    'block_weight': 1.5,
    'threshold': 0.0,
}


def categorize_video(title: str) -> str:
    """
    按标题关键词分类（子串匹配，不区分大小写）
    Categorise a title by keyword substring match, case-insensitive

    Examples:
        >>> categorize_video('Fed holds rates steady')
        'finance'
        >>> categorize_video('Weekend vlog')
        'other'
    """
    title_lower = (title or '').lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in title_lower for keyword in keywords):
            return category
    return 'other'


@dataclass
class KeywordDecision:
    """单个条目的打分结果 / Scoring outcome for one item"""
    kept: bool
    score: float
    reason: str
    matched_allow: list[str] = field(default_factory=list)
    matched_block: list[str] = field(default_factory=list)


@dataclass
class KeywordFilterResult:
    """
    关键词过滤结果
    Keyword filter result

    Attributes:
        kept: 保留的条目
        dropped: 丢弃的条目
        reasons: 条目 ID 到原因的映射
    """
    kept: list[RawItem] = field(default_factory=list)
    dropped: list[RawItem] = field(default_factory=list)
    reasons: dict[str, str] = field(default_factory=dict)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)


class KeywordFilter:
    """
    加权关键词过滤器
    Weighted Keyword Filter

    Attributes:
        allow_list: 加分词
        block_list: 减分词
        category_rules: 分类 -> {allow_weight, block_weight, threshold}
    """

    def __init__(self, config: dict[str, Any] | None = None):
        config = config or {}
        self.allow_list: list[str] = [t for t in config.get('allow_list') or [] if t]
        self.block_list: list[str] = [t for t in config.get('block_list') or [] if t]
        self.category_rules: dict[str, dict] = config.get('category_rules') or {}

    @property
    def active(self) -> bool:
        return bool(self.allow_list or self.block_list)

    def _rule_for(self, category: str) -> dict[str, float]:
        rule = self.category_rules.get(category) or {}
        return {**DEFAULT_CATEGORY_RULE, **rule}

    def score(self, item: RawItem) -> KeywordDecision:
        """
        为单个条目打分
        Score a single item
        """
        text = f"{item.title or ''} {item.description or ''}".lower()
        rule = self._rule_for(item.category or 'other')

        matched_allow = [term for term in self.allow_list if term.lower() in text]
        matched_block = [term for term in self.block_list if term.lower() in text]

        if not matched_allow and not matched_block:
            return KeywordDecision(kept=True, score=0.0, reason='neutral')

        score = (
            len(matched_allow) * rule['allow_weight']
            - len(matched_block) * rule['block_weight']
        )
        if score >= rule['threshold']:
            reason = (
                f"kept: allow[{','.join(matched_allow)}] > block[{','.join(matched_block)}]"
                f" (score: {score:.1f})"
            )
            return KeywordDecision(True, score, reason, matched_allow, matched_block)

        reason = (
            f"blocked: block[{','.join(matched_block)}] > allow[{','.join(matched_allow)}]"
            f" (score: {score:.1f})"
        )
        return KeywordDecision(False, score, reason, matched_allow, matched_block)

    def apply(self, items: list[RawItem]) -> KeywordFilterResult:
        """
        过滤条目列表，未配置任何词时全部保留
        Filter items; everything is kept when no terms are configured
        """
        result = KeywordFilterResult()
        if not self.active:
            result.kept = list(items)
            return result

        for item in items:
            decision = self.score(item)
            if decision.kept:
                result.kept.append(item)
                if decision.matched_block:
                    logger.info(f"  [FILTER] Kept despite block words: \"{item.title}\" ({decision.reason})")
            else:
                result.dropped.append(item)
                result.reasons[item.id] = decision.reason
                logger.info(f"  [FILTER] Dropped: \"{item.title}\" ({decision.reason})")
        return result

"""
话题聚类模块
Topic Clustering Module

单次遍历、贪心、依赖输入顺序的锚点聚类：
Single-pass, greedy, order-sensitive anchor clustering:

1. 预先计算每个条目的信号词集合
2. 按输入顺序处理条目：
   a. 信号词少于 2 个：单独成簇
   b. 否则按簇创建顺序与每个簇的锚点（第一个条目）比较，
      第一个相似度 >= 阈值的簇收下该条目（不做全局最优匹配）
   c. 没有簇匹配：以该条目为锚点新建一个簇
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from daily_playlist.models import CuratedItem

from .signals import build_generic_words, jaccard, signal_words

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.35
MIN_SIGNAL_WORDS = 2


@dataclass
class TopicCluster:
    """
    话题聚类
    A group of items believed to cover the same topic

    Attributes:
        topic: 话题标签（锚点信号词拼接，没有信号词时为锚点标题）
        items: 簇内条目，第一个为锚点
        anchor_signals: 锚点的信号词集合
    """
    topic: str
    items: list[CuratedItem] = field(default_factory=list)
    anchor_signals: frozenset[str] = frozenset()

    @property
    def anchor(self) -> CuratedItem:
        return self.items[0]

    @property
    def item_count(self) -> int:
        return len(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "item_count": self.item_count,
            "item_ids": [item.id for item in self.items],
        }


@dataclass
class ClusteringResult:
    """
    聚类结果
    Clustering result

    Attributes:
        clusters: 按创建顺序排列的话题簇
        signal_map: 条目 ID 到信号词集合的映射（供诊断使用）
    """
    clusters: list[TopicCluster] = field(default_factory=list)
    signal_map: dict[str, frozenset[str]] = field(default_factory=dict)

    @property
    def multi_item_clusters(self) -> list[TopicCluster]:
        return [c for c in self.clusters if len(c) > 1]

    def __len__(self) -> int:
        return len(self.clusters)


def cluster_by_topic(
    items: list[CuratedItem],
    generic_terms: list[str] | None = None,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> ClusteringResult:
    """
    按话题聚类条目
    Cluster items by topic

    Args:
        items: 已排序的条目列表（顺序决定锚点）
        generic_terms: 通用词列表（可含多词短语），其中的单词不作为信号词
        threshold: 与锚点的最低 Jaccard 相似度

    Returns:
        ClusteringResult，每个条目恰好属于一个簇
    """
    generic_words = build_generic_words(generic_terms or [])

    ordered_signals = [signal_words(item.title, generic_words) for item in items]
    result = ClusteringResult()
    for item, words in zip(items, ordered_signals):
        result.signal_map[item.id] = frozenset(words)

    for item, words in zip(items, ordered_signals):
        signals = frozenset(words)
        topic = ' '.join(words) if words else item.title

        if len(signals) < MIN_SIGNAL_WORDS:
            result.clusters.append(TopicCluster(topic=topic, items=[item], anchor_signals=signals))
            continue

        for cluster in result.clusters:
            if jaccard(signals, cluster.anchor_signals) >= threshold:
                cluster.items.append(item)
                break
        else:
            result.clusters.append(TopicCluster(topic=topic, items=[item], anchor_signals=signals))

    merged = sum(1 for c in result.clusters if len(c) > 1)
    logger.info(f"Clustered {len(items)} items into {len(result.clusters)} topics ({merged} multi-item)")
    return result

# 话题聚合模块
# Topic aggregation: signal words, similarity and anchor clustering

from .signals import (
    PLATFORM_NOISE,
    STOP_WORDS,
    build_generic_words,
    extract_signals,
    jaccard,
    normalize_text,
    signal_words,
)
from .topic_clustering import (
    DEFAULT_SIMILARITY_THRESHOLD,
    MIN_SIGNAL_WORDS,
    ClusteringResult,
    TopicCluster,
    cluster_by_topic,
)

__all__ = [
    'PLATFORM_NOISE',
    'STOP_WORDS',
    'build_generic_words',
    'extract_signals',
    'jaccard',
    'normalize_text',
    'signal_words',
    'DEFAULT_SIMILARITY_THRESHOLD',
    'MIN_SIGNAL_WORDS',
    'ClusteringResult',
    'TopicCluster',
    'cluster_by_topic',
]

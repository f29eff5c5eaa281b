"""
信号词提取与相似度模块
Signal Word Extraction and Similarity Module

从标题中去掉停用词、平台噪声词和通用词，留下真正标识话题的"信号词"，
并用 Jaccard 系数比较两组信号词。
Strips stop words, platform noise and caller-supplied generic terms from a
title, leaving the "signal words" that identify its topic, and compares two
signal sets with the Jaccard coefficient.
"""

import re
from collections.abc import Iterable

# 英文停用词
STOP_WORDS: frozenset[str] = frozenset({
    'a', 'an', 'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'from', 'is', 'are', 'was', 'were', 'be', 'been',
    'being', 'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would',
    'could', 'should', 'may', 'might', 'can', 'shall', 'not', 'no', 'nor',
    'so', 'if', 'then', 'than', 'that', 'this', 'these', 'those', 'it',
    'its', 'he', 'she', 'they', 'we', 'you', 'i', 'me', 'my', 'your',
    'his', 'her', 'our', 'their', 'what', 'which', 'who', 'whom', 'how',
    'when', 'where', 'why', 'all', 'each', 'every', 'both', 'few', 'more',
    'most', 'other', 'some', 'such', 'only', 'own', 'same', 'just', 'now',
    'also', 'very', 'too', 'about', 'up', 'out', 'into', 'over', 'after',
    'before', 'between', 'under', 'again', 'here', 'there', 'as', 'any',
    'new', 'says', 'said', 'get', 'gets', 'got', 'go', 'goes', 'going',
    'come', 'comes', 'much', 'many', 'well', 'still', 'even', 'big',
    'look', 'make', 'makes', 'take', 'takes', 'talk', 'talks', 'know',
    'think', 'see', 'way', 'back', 'first', 'one', 'two', 'three',
})

# 平台标题噪声词
PLATFORM_NOISE: frozenset[str] = frozenset({
    'breaking', 'live', 'update', 'watch', 'full', 'episode', 'podcast',
    'show', 'daily', 'weekly', 'wrap', 'recap', 'opinion', 'analysis',
    'exclusive', 'special', 'report', 'latest', 'today', 'tonight',
    'morning', 'evening', 'closing', 'bell', 'power', 'lunch', 'halt',
    'correction', 'balance', 'businessweek', 'television', 'tv',
})

_QUOTES = re.compile(r"['\"‘’“”]")
_PUNCTUATION = re.compile(r'[^\w\s]')
_WHITESPACE = re.compile(r'\s+')
_SHORT_NUMBER = re.compile(r'^\d{1,3}$')
_YEAR_LIKE = re.compile(r'^20\d{2,6}$')


def normalize_text(text: str) -> list[str]:
    """
    小写化、去引号、标点替换为空格后分词
    Lowercase, drop quotes, turn punctuation into spaces, then split

    Examples:
        >>> normalize_text("Fed's Rate-Decision: LIVE!")
        ['feds', 'rate', 'decision', 'live']
    """
    cleaned = _QUOTES.sub('', (text or '').lower())
    cleaned = _PUNCTUATION.sub(' ', cleaned)
    cleaned = _WHITESPACE.sub(' ', cleaned).strip()
    return cleaned.split(' ') if cleaned else []


def build_generic_words(terms: Iterable[str]) -> frozenset[str]:
    """
    将通用词列表（可含多词短语）拆成单词集合
    Split a generic-term list, multi-word terms included, into single words

    Examples:
        >>> sorted(build_generic_words(['Interest Rate', 'stocks']))
        ['interest', 'rate', 'stocks']
    """
    words: set[str] = set()
    for term in terms:
        for word in normalize_text(term):
            if len(word) > 2:
                words.add(word)
    return frozenset(words)


def _is_signal(token: str, generic_words: frozenset[str] | set[str]) -> bool:
    if not token or len(token) <= 2:
        return False
    if _SHORT_NUMBER.match(token) or _YEAR_LIKE.match(token):
        return False
    if token in STOP_WORDS or token in PLATFORM_NOISE or token in generic_words:
        return False
    return True


def signal_words(title: str, generic_words: frozenset[str] | set[str] = frozenset()) -> list[str]:
    """
    按出现顺序返回去重后的信号词
    Return the de-duplicated signal words in order of first appearance

    Examples:
        >>> signal_words('Fed rate decision: what it means for 2026', frozenset())
        ['fed', 'rate', 'decision', 'means']
    """
    ordered: list[str] = []
    seen: set[str] = set()
    for token in normalize_text(title):
        if token in seen or not _is_signal(token, generic_words):
            continue
        seen.add(token)
        ordered.append(token)
    return ordered


def extract_signals(title: str, generic_words: frozenset[str] | set[str] = frozenset()) -> frozenset[str]:
    """
    提取标题的信号词集合
    Extract the signal-word set of a title

    Args:
        title: 标题
        generic_words: 由 build_generic_words 得到的通用词集合

    Returns:
        信号词集合（相同输入总是得到相同集合）
    """
    return frozenset(signal_words(title, generic_words))


def jaccard(a: frozenset[str] | set[str], b: frozenset[str] | set[str]) -> float:
    """
    Jaccard 相似度 |A ∩ B| / |A ∪ B|，任一为空时返回 0
    Jaccard similarity |A ∩ B| / |A ∪ B|; 0 when either set is empty

    Examples:
        >>> jaccard({'fed', 'rate'}, {'fed', 'rate', 'cut'})
        0.6666666666666666
        >>> jaccard(set(), set())
        0.0
    """
    if not a or not b:
        return 0.0
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    return intersection / union if union else 0.0

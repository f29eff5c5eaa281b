"""
策展编排器模块
Curation Orchestrator Module

对每个频道独立执行 解析 -> 抓取 -> 过滤，以有界并发度同时运行，
全部完成后按频道配置顺序合并、与已见集合去重、按发布日期降序稳定排序，
生成一次运行的播放列表快照，并可选地做话题聚类。
Runs resolve -> fetch -> filter independently per source with bounded
concurrency, then merges in configured source order, drops already-seen items,
stable-sorts by publish date descending, builds the run's snapshot and
optionally clusters it by topic.

单个频道的失败（解析失败、抓取失败、超时）只体现在诊断计数中，不会让整次运行失败；
只有配置错误（ConfigError）会向上抛出。
A failing source (resolution failure, fetch failure, timeout) only shows up
in diagnostics and never fails the run; only ConfigError propagates.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from daily_playlist.aggregation import ClusteringResult, TopicCluster, cluster_by_topic
from daily_playlist.config import (
    ConfigError,
    get_curation_config,
    get_fetch_config,
    get_filters_config,
    get_storage_config,
    load_generic_terms,
)
from daily_playlist.fetchers import (
    ChannelIdCache,
    ChannelResolver,
    DualSourceFetcher,
    DurationEnricher,
    RSSFetcher,
    YtDlpFetcher,
)
from daily_playlist.filters import KeywordFilter, RecencyFormatFilter
from daily_playlist.models import CuratedItem, PlaylistSnapshot, Source, SourceDiagnostics
from daily_playlist.seen_store import SeenStore

logger = logging.getLogger(__name__)

# 收集循环轮询间隔（秒）
POLL_INTERVAL = 0.2


@dataclass
class SourceOutcome:
    """单个频道流水线的结果 / Result of one source's pipeline"""
    items: list[CuratedItem]
    diagnostics: SourceDiagnostics
    resolved_id: str | None = None


@dataclass
class CurationReport:
    """
    一次策展运行的完整结果
    Everything one curation run produced

    Attributes:
        snapshot: 播放列表快照
        diagnostics: 按频道配置顺序排列的诊断计数
        clustering: 话题聚类结果，未聚类时为 None
        resolved_ids: 本次新解析的频道 ID（URL -> ID）
    """
    snapshot: PlaylistSnapshot
    diagnostics: list[SourceDiagnostics] = field(default_factory=list)
    clustering: ClusteringResult | None = None
    resolved_ids: dict[str, str] = field(default_factory=dict)

    @property
    def clusters(self) -> list[TopicCluster]:
        return self.clustering.clusters if self.clustering else []

    @property
    def resolution_failures(self) -> int:
        return sum(1 for d in self.diagnostics if d.resolution_failed)

    @property
    def failed_sources(self) -> list[str]:
        return [d.source_name for d in self.diagnostics if d.failed]

    def summary(self) -> str:
        return (
            f"{self.snapshot.total_count} videos from {len(self.diagnostics)} channels "
            f"({self.resolution_failures} unresolved, {len(self.failed_sources)} failed"
            f"{', cancelled' if self.snapshot.cancelled else ''})"
        )


class SourceSlots:
    """
    有界并发槽位
    Bounded concurrency slots

    每个频道在获得槽位时开始计时；超时的频道由收集循环归还槽位，
    卡住的线程不再占用并发额度，排队中的频道得以继续。
    A source's clock starts when it gets a slot. The collect loop hands back
    the slot of a timed-out source, so a stuck thread no longer counts
    against the limit and queued sources keep moving.
    """

    def __init__(self, limit: int):
        self._semaphore = threading.Semaphore(limit)
        self._lock = threading.Lock()
        self._started_at: dict[int, float] = {}
        self._released: set[int] = set()

    def acquire(self, index: int, cancel_event: threading.Event) -> bool:
        """等待槽位；取消时返回 False / Wait for a slot; False once cancelled"""
        while not cancel_event.is_set():
            if self._semaphore.acquire(timeout=POLL_INTERVAL):
                with self._lock:
                    self._started_at[index] = time.monotonic()
                return True
        return False

    def release(self, index: int) -> None:
        """归还槽位，重复调用无效果 / Give the slot back; repeat calls are no-ops"""
        with self._lock:
            if index not in self._started_at or index in self._released:
                return
            self._released.add(index)
        self._semaphore.release()

    def expired(self, indexes: list[int], timeout: float) -> list[int]:
        current = time.monotonic()
        with self._lock:
            return [
                index for index in indexes
                if index in self._started_at
                and index not in self._released
                and current - self._started_at[index] > timeout
            ]


class CurationOrchestrator:
    """
    策展编排器
    Curation Orchestrator

    Attributes:
        fetcher: 双通道获取器
        resolver: 频道 ID 解析器
        channel_cache: 频道 ID 缓存（可选）
        recency_filter: 时效与格式过滤器
        keyword_filter: 关键词过滤器（可选）
        enricher: 时长补全器（可选）
        seen_store: 已见集合（可选）
        generic_terms: 聚类用通用词
        similarity_threshold: 聚类相似度阈值
        cluster_enabled: 是否做话题聚类
        max_workers: 并发频道数
        source_timeout: 单个频道的总超时（秒）
    """

    def __init__(
        self,
        fetcher: DualSourceFetcher,
        resolver: ChannelResolver | None = None,
        channel_cache: ChannelIdCache | None = None,
        recency_filter: RecencyFormatFilter | None = None,
        keyword_filter: KeywordFilter | None = None,
        enricher: DurationEnricher | None = None,
        seen_store: SeenStore | None = None,
        generic_terms: list[str] | None = None,
        similarity_threshold: float = 0.35,
        cluster_enabled: bool = True,
        max_workers: int = 4,
        source_timeout: float = 120.0,
    ):
        self.fetcher = fetcher
        self.resolver = resolver or ChannelResolver()
        self.channel_cache = channel_cache
        self.recency_filter = recency_filter or RecencyFormatFilter()
        self.keyword_filter = keyword_filter
        self.enricher = enricher
        self.seen_store = seen_store
        self.generic_terms = list(generic_terms or [])
        self.similarity_threshold = similarity_threshold
        self.cluster_enabled = cluster_enabled
        self.max_workers = max(1, int(max_workers))
        self.source_timeout = source_timeout

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        seen_store: SeenStore | None = None,
        lookback_hours: float | None = None,
        similarity_threshold: float | None = None,
        cluster_enabled: bool | None = None,
    ) -> "CurationOrchestrator":
        """
        按配置组装编排器，参数覆盖优先于配置
        Build an orchestrator from config; explicit overrides win

        Raises:
            ConfigError: 参数取值非法
        """
        curation = get_curation_config(config)
        fetch_config = get_fetch_config(config)
        storage = get_storage_config(config)

        lookback = curation['lookback_hours'] if lookback_hours is None else lookback_hours
        threshold = curation['similarity_threshold'] if similarity_threshold is None else similarity_threshold
        if not isinstance(lookback, (int, float)) or lookback <= 0:
            raise ConfigError(f"lookback_hours must be a positive number, got {lookback!r}")
        if not isinstance(threshold, (int, float)) or not 0 <= threshold <= 1:
            raise ConfigError(f"similarity_threshold must be between 0 and 1, got {threshold!r}")

        markers = curation.get('short_form_markers') or []
        if not isinstance(markers, list):
            raise ConfigError("short_form_markers must be a list")

        cache_path = storage.get('channel_cache_path')
        return cls(
            fetcher=DualSourceFetcher(RSSFetcher(fetch_config), YtDlpFetcher(fetch_config)),
            resolver=ChannelResolver(fetch_config),
            channel_cache=ChannelIdCache(cache_path) if cache_path else None,
            recency_filter=RecencyFormatFilter(
                lookback_hours=lookback,
                min_duration=curation['min_short_duration'],
                markers=markers,
            ),
            keyword_filter=KeywordFilter(get_filters_config(config)),
            enricher=DurationEnricher(fetch_config) if curation['enrich_durations'] else None,
            seen_store=seen_store,
            generic_terms=load_generic_terms(config),
            similarity_threshold=threshold,
            cluster_enabled=curation['cluster'] if cluster_enabled is None else cluster_enabled,
            max_workers=curation['max_workers'],
            source_timeout=curation['source_timeout'],
        )

    # ------------------------------------------------------------------
    # 单频道流水线 Per-source pipeline
    # ------------------------------------------------------------------

    def _resolve(self, source: Source, diagnostics: SourceDiagnostics) -> tuple[str | None, str | None]:
        """
        返回 (channel_id, 本次新解析的 ID)
        Return (channel_id, newly resolved id)
        """
        cached = self.channel_cache.get(source) if self.channel_cache else source.channel_id
        if cached:
            return cached, None

        channel_id = self.resolver.resolve(source.url)
        if channel_id:
            logger.info(f"Resolved {source.name} -> {channel_id}")
            return channel_id, channel_id

        diagnostics.resolution_failed = True
        logger.warning(f"[RESOLVE] {source.name}: channel_id unresolved, fast path skipped")
        return None, None

    def curate_source(
        self,
        source: Source,
        now: datetime,
        cancel_event: threading.Event | None = None,
    ) -> SourceOutcome:
        """
        对单个频道执行 解析 -> 抓取 -> 过滤
        Run resolve -> fetch -> filter for a single source
        """
        diagnostics = SourceDiagnostics(source_name=source.name)
        outcome = SourceOutcome(items=[], diagnostics=diagnostics)

        channel_id, outcome.resolved_id = self._resolve(source, diagnostics)
        if cancel_event is not None and cancel_event.is_set():
            diagnostics.errors.append("Cancelled before fetch")
            return outcome

        fetched = self.fetcher.fetch(source, channel_id)
        diagnostics.fetched = len(fetched.items)
        diagnostics.provenance = fetched.provenance
        diagnostics.errors.extend(fetched.errors)

        recent, too_old = self.recency_filter.split_recent(fetched.items, now)
        diagnostics.recency_dropped = len(too_old)

        if self.enricher and recent and not (cancel_event is not None and cancel_event.is_set()):
            self.enricher.enrich(recent, cancel_event)

        passed, short_form = self.recency_filter.split_format(recent, source)
        diagnostics.format_dropped = len(short_form)

        if self.keyword_filter is not None and self.keyword_filter.active:
            keyword_result = self.keyword_filter.apply(passed)
            passed = keyword_result.kept
            diagnostics.keyword_dropped = keyword_result.dropped_count

        outcome.items = passed
        diagnostics.final = len(passed)
        return outcome

    def _safe_curate(
        self,
        index: int,
        source: Source,
        now: datetime,
        cancel_event: threading.Event,
        slots: SourceSlots,
    ) -> SourceOutcome:
        """
        线程任务：等待槽位后执行，吸收非配置类异常
        Worker task: waits for a slot, then runs; absorbs non-config errors
        """
        if not slots.acquire(index, cancel_event):
            outcome = SourceOutcome(items=[], diagnostics=SourceDiagnostics(source_name=source.name))
            outcome.diagnostics.errors.append("Cancelled before start")
            return outcome
        try:
            return self.curate_source(source, now, cancel_event)
        except ConfigError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error curating {source.name}: {e}")
            outcome = SourceOutcome(items=[], diagnostics=SourceDiagnostics(source_name=source.name))
            outcome.diagnostics.errors.append(f"Unexpected error: {e}")
            return outcome
        finally:
            slots.release(index)

    # ------------------------------------------------------------------
    # 运行 Run
    # ------------------------------------------------------------------

    def _collect(
        self,
        sources: list[Source],
        now: datetime,
        cancel_event: threading.Event,
    ) -> tuple[dict[int, SourceOutcome], bool]:
        """
        并发执行所有频道并收集结果
        Run every source concurrently and collect the outcomes

        每个频道一个线程，同时运行的频道数由 SourceSlots 限制为 max_workers。
        One thread per source; SourceSlots caps the running sources at max_workers.

        Returns:
            (索引 -> 结果, 是否被取消)
        """
        outcomes: dict[int, SourceOutcome] = {}
        slots = SourceSlots(self.max_workers)
        cancelled = False

        executor = ThreadPoolExecutor(max_workers=len(sources), thread_name_prefix='curate')
        try:
            future_to_index: dict[Future, int] = {
                executor.submit(self._safe_curate, index, source, now, cancel_event, slots): index
                for index, source in enumerate(sources)
            }
            pending = set(future_to_index)

            while pending:
                if cancel_event.is_set():
                    cancelled = True
                    logger.warning(f"Run cancelled with {len(pending)} sources still pending")
                    break

                done, pending = wait(pending, timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    outcomes[future_to_index[future]] = future.result()

                index_to_future = {future_to_index[future]: future for future in pending}
                for index in slots.expired(list(index_to_future), self.source_timeout):
                    pending.discard(index_to_future[index])
                    slots.release(index)
                    source = sources[index]
                    diagnostics = SourceDiagnostics(source_name=source.name, timed_out=True)
                    diagnostics.errors.append(f"Timed out after {self.source_timeout}s")
                    outcomes[index] = SourceOutcome(items=[], diagnostics=diagnostics)
                    logger.warning(f"[TIMEOUT] {source.name}: no result after {self.source_timeout}s, skipping")

            for future in pending:
                index = future_to_index[future]
                diagnostics = SourceDiagnostics(source_name=sources[index].name)
                diagnostics.errors.append("Cancelled before completion")
                outcomes[index] = SourceOutcome(items=[], diagnostics=diagnostics)
        finally:
            # 卡住的线程无法中断，不等待它们
            executor.shutdown(wait=False, cancel_futures=True)

        return outcomes, cancelled

    def _drop_seen(self, outcomes: list[SourceOutcome]) -> None:
        if self.seen_store is None:
            return
        ids = [item.id for outcome in outcomes for item in outcome.items]
        if not ids:
            return
        try:
            seen = self.seen_store.contains_many(ids)
        except Exception as e:
            logger.warning(f"Seen store unavailable, skipping history dedup: {e}")
            return

        for outcome in outcomes:
            kept = [item for item in outcome.items if item.id not in seen]
            dropped = len(outcome.items) - len(kept)
            if dropped:
                outcome.items = kept
                outcome.diagnostics.seen_dropped = dropped
                outcome.diagnostics.final = len(kept)

    def run(
        self,
        sources: list[Source],
        now: datetime | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CurationReport:
        """
        执行一次策展
        Run one curation pass

        Args:
            sources: 按配置顺序排列的频道
            now: 当前时间（默认 datetime.now()）
            cancel_event: 外部取消信号，置位后尽快返回已完成部分

        Returns:
            CurationReport，快照总是存在（可能为空）
        """
        now = now or datetime.now()
        cancel_event = cancel_event or threading.Event()
        logger.info(f"Curating {len(sources)} channels (lookback {self.recency_filter.lookback_hours}h)")

        if sources:
            collected, cancelled = self._collect(sources, now, cancel_event)
        else:
            collected, cancelled = {}, cancel_event.is_set()
        outcomes = [collected[index] for index in range(len(sources))]

        self._drop_seen(outcomes)

        resolved_ids: dict[str, str] = {}
        merged: list[CuratedItem] = []
        for source, outcome in zip(sources, outcomes):
            merged.extend(outcome.items)
            if outcome.resolved_id:
                resolved_ids[source.url] = outcome.resolved_id
            d = outcome.diagnostics
            logger.info(
                f"[{source.name}] fetched={d.fetched} too_old={d.recency_dropped} "
                f"short={d.format_dropped} keyword={d.keyword_dropped} seen={d.seen_dropped} "
                f"final={d.final} via={d.provenance or '-'}"
            )

        # 稳定排序：同一天的条目保持频道配置顺序
        merged.sort(key=lambda item: item.upload_date, reverse=True)

        snapshot = PlaylistSnapshot(
            run_at=now,
            items=tuple(merged),
            lookback_hours=self.recency_filter.lookback_hours,
            cancelled=cancelled,
        )

        clustering = None
        if self.cluster_enabled and merged:
            clustering = cluster_by_topic(list(snapshot.items), self.generic_terms, self.similarity_threshold)

        if self.channel_cache is not None and resolved_ids:
            self.channel_cache.update(resolved_ids)
            try:
                self.channel_cache.save()
            except OSError as e:
                logger.warning(f"Could not write channel cache: {e}")

        report = CurationReport(
            snapshot=snapshot,
            diagnostics=[outcome.diagnostics for outcome in outcomes],
            clustering=clustering,
            resolved_ids=resolved_ids,
        )
        if not merged:
            logger.info("No new videos today")
        logger.info(f"Curation finished: {report.summary()}")
        return report

"""
调度器模块
Scheduler Module

实现定时任务调度，执行完整的 策展-输出-标记已见 流程。
Implements scheduled execution of the complete curate-write-mark workflow.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Any

import schedule

from daily_playlist.config import get_config_value, get_storage_config, load_sources
from daily_playlist.curator import CurationOrchestrator, CurationReport
from daily_playlist.output import SnapshotWriter
from daily_playlist.seen_store import SQLiteSeenStore

logger = logging.getLogger(__name__)


class Scheduler:
    """
    定时任务调度器
    Scheduled Task Scheduler

    负责把配置、编排器、输出和已见集合串起来。
    Wires config, orchestrator, writer and seen-store together.

    Attributes:
        config: 完整配置字典（已合并默认值）
        schedule_time: 每日执行时间（如 "07:00"）
        overrides: 传给编排器的运行参数覆盖
        cancel_event: 外部取消信号
        _running: 调度器是否正在运行
    """

    def __init__(self, config: dict, overrides: dict[str, Any] | None = None):
        """
        初始化调度器
        Initialize the scheduler

        Args:
            config: 完整配置字典
            overrides: lookback_hours / similarity_threshold / cluster_enabled 覆盖值

        Examples:
            >>> config = load_config_with_defaults("config.yaml")
            >>> scheduler = Scheduler(config, {'lookback_hours': 24})
        """
        self.config = config
        self.schedule_time = get_config_value(config, 'schedule.time', '07:00')
        self.overrides = overrides or {}
        self.cancel_event = threading.Event()
        self._running = False

        logger.info(f"Scheduler initialized with schedule_time={self.schedule_time}")

    def _open_seen_store(self) -> SQLiteSeenStore | None:
        db_path = get_storage_config(self.config).get('seen_db_path')
        if not db_path:
            return None
        store = SQLiteSeenStore(db_path)
        try:
            store.init_db()
        except Exception as e:
            logger.warning(f"Seen store unavailable ({db_path}), running without history dedup: {e}")
            store.close()
            return None
        return store

    def run_task(self) -> CurationReport:
        """
        执行完整流程
        Execute the complete workflow

        流程：
        1. 读取频道列表
        2. 策展（解析、抓取、过滤、聚类）
        3. 写入 JSON 与 Markdown
        4. 标记为已见
        """
        start_time = datetime.now()
        logger.info(f"=== Task started at {start_time.isoformat()} ===")
        self.cancel_event.clear()

        seen_store = self._open_seen_store()
        try:
            sources = load_sources(self.config)
            if not sources:
                logger.warning("No sources configured")

            orchestrator = CurationOrchestrator.from_config(self.config, seen_store=seen_store, **self.overrides)
            report = orchestrator.run(sources, now=start_time, cancel_event=self.cancel_event)

            for diagnostics in report.diagnostics:
                if diagnostics.failed:
                    logger.warning(f"Source {diagnostics.source_name} failed: {'; '.join(diagnostics.errors)}")

            writer = SnapshotWriter(get_storage_config(self.config)['output_dir'])
            result = writer.write(report.snapshot, report.clusters)
            logger.info(
                f"Daily file {result.json_path.name}: {result.total_count} total "
                f"({result.new_count} new, {result.existing_count} previously tracked)"
            )

            if seen_store is not None and report.snapshot.items:
                try:
                    seen_store.mark_seen(report.snapshot.items)
                except Exception as e:
                    logger.warning(f"Could not mark videos as seen: {e}")

            duration = (datetime.now() - start_time).total_seconds()
            logger.info(f"=== Task completed: {report.summary()} (duration: {duration:.2f}s) ===")
            return report
        except Exception as e:
            logger.error(f"Task failed with error: {e}", exc_info=True)
            raise
        finally:
            if seen_store is not None:
                seen_store.close()

    def _scheduled_run(self):
        try:
            self.run_task()
        except Exception as e:
            # 保持调度器继续运行，下一个时间点重试
            logger.error(f"Scheduled run failed, next attempt at {self.schedule_time}: {e}")

    def start(self):
        """
        启动定时调度
        Start scheduled execution

        根据配置的时间每天执行任务。
        Executes the task daily at the configured time.
        """
        logger.info(f"Starting scheduler, task will run daily at {self.schedule_time}")

        schedule.clear()
        schedule.every().day.at(self.schedule_time).do(self._scheduled_run)

        self._running = True
        logger.info("Scheduler started, waiting for scheduled time...")

        try:
            while self._running:
                schedule.run_pending()
                time.sleep(60)
        except KeyboardInterrupt:
            logger.info("Scheduler stopped by user")
            self._running = False

    def stop(self):
        """
        停止调度器并取消正在进行的运行
        Stop the scheduler and cancel any run in progress
        """
        logger.info("Stopping scheduler...")
        self._running = False
        self.cancel_event.set()
        schedule.clear()

    def run_once(self) -> CurationReport:
        """
        手动执行一次任务
        Manually execute the task once
        """
        logger.info("Running task manually (once)...")
        report = self.run_task()
        logger.info("Manual task execution completed")
        return report

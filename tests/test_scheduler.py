"""
调度器模块测试
Scheduler Module Tests

测试Scheduler类的初始化、单次执行流程和定时调度。
Tests Scheduler initialization, the single-run workflow and scheduling.
"""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from daily_playlist.config import ConfigError, apply_defaults
from daily_playlist.curator import CurationReport
from daily_playlist.models import CuratedItem, PlaylistSnapshot, SourceDiagnostics
from daily_playlist.scheduler import Scheduler
from daily_playlist.seen_store import SQLiteSeenStore


def make_config(tmp_path, **sections) -> dict:
    config = {
        'storage': {
            'seen_db_path': str(tmp_path / 'data' / 'seen.db'),
            'channel_cache_path': str(tmp_path / 'data' / 'channel_ids.json'),
            'output_dir': str(tmp_path / 'output'),
        },
        'sources': [{'name': 'CNBC', 'url': 'https://www.youtube.com/@CNBC'}],
    }
    config.update(sections)
    return apply_defaults(config)


def make_report(item_ids: list[str]) -> CurationReport:
    items = tuple(
        CuratedItem(id=i, title=f'Video {i}', upload_date='20260207', channel_name='CNBC', duration=300)
        for i in item_ids
    )
    snapshot = PlaylistSnapshot(run_at=datetime(2026, 2, 8, 7, 0), items=items)
    diagnostics = [SourceDiagnostics('CNBC', fetched=len(items), final=len(items))]
    return CurationReport(snapshot=snapshot, diagnostics=diagnostics)


class TestSchedulerInit:
    """测试Scheduler初始化"""

    def test_init_with_default_config(self):
        scheduler = Scheduler({})

        assert scheduler.schedule_time == '07:00'
        assert scheduler._running is False
        assert not scheduler.cancel_event.is_set()

    def test_init_with_custom_schedule_time(self):
        scheduler = Scheduler({'schedule': {'time': '10:30'}}, {'lookback_hours': 24})

        assert scheduler.schedule_time == '10:30'
        assert scheduler.overrides == {'lookback_hours': 24}


class TestRunTask:
    """测试完整流程"""

    def test_run_task_writes_output_and_marks_seen(self, tmp_path):
        config = make_config(tmp_path)
        orchestrator = MagicMock()
        orchestrator.run.return_value = make_report(['a', 'b'])

        with patch('daily_playlist.scheduler.CurationOrchestrator.from_config',
                   return_value=orchestrator) as mock_from_config:
            report = Scheduler(config, {'lookback_hours': 12}).run_once()

        assert report.snapshot.total_count == 2
        _, kwargs = mock_from_config.call_args
        assert kwargs['lookback_hours'] == 12
        assert kwargs['seen_store'] is not None

        sources = orchestrator.run.call_args[0][0]
        assert [s.name for s in sources] == ['CNBC']

        assert (tmp_path / 'output' / '2026-02-08.json').exists()
        assert (tmp_path / 'output' / '2026-02-08.md').exists()

        store = SQLiteSeenStore(config['storage']['seen_db_path'])
        assert store.contains_many(['a', 'b', 'c']) == {'a', 'b'}
        store.close()

    def test_empty_run_still_writes(self, tmp_path):
        config = make_config(tmp_path)
        orchestrator = MagicMock()
        orchestrator.run.return_value = make_report([])

        with patch('daily_playlist.scheduler.CurationOrchestrator.from_config', return_value=orchestrator):
            report = Scheduler(config).run_task()

        assert report.snapshot.total_count == 0
        assert (tmp_path / 'output' / '2026-02-08.json').exists()

    def test_malformed_sources_raise(self, tmp_path):
        config = make_config(tmp_path, sources=[{'name': 'No URL'}])

        with pytest.raises(ConfigError):
            Scheduler(config).run_task()

    def test_unusable_seen_store_is_skipped(self, tmp_path):
        blocker = tmp_path / 'not_a_dir'
        blocker.write_text('file in the way', encoding='utf-8')
        config = make_config(tmp_path)
        config['storage']['seen_db_path'] = str(blocker / 'seen.db')
        orchestrator = MagicMock()
        orchestrator.run.return_value = make_report(['a'])

        with patch('daily_playlist.scheduler.CurationOrchestrator.from_config',
                   return_value=orchestrator) as mock_from_config:
            report = Scheduler(config).run_task()

        assert report.snapshot.total_count == 1
        assert mock_from_config.call_args[1]['seen_store'] is None


class TestScheduling:
    """测试定时调度"""

    def test_start_registers_daily_job(self):
        scheduler = Scheduler({'schedule': {'time': '06:45'}})

        def stop_after_first_check():
            scheduler._running = False

        with patch('daily_playlist.scheduler.schedule') as mock_schedule, \
                patch('daily_playlist.scheduler.time.sleep'):
            mock_schedule.run_pending.side_effect = stop_after_first_check
            scheduler.start()

        mock_schedule.every.return_value.day.at.assert_called_once_with('06:45')
        mock_schedule.run_pending.assert_called_once()

    def test_stop_sets_cancel_event(self):
        scheduler = Scheduler({})
        scheduler._running = True

        with patch('daily_playlist.scheduler.schedule') as mock_schedule:
            scheduler.stop()

        assert scheduler._running is False
        assert scheduler.cancel_event.is_set()
        mock_schedule.clear.assert_called_once()

    def test_scheduled_run_failure_keeps_scheduler_alive(self):
        scheduler = Scheduler({})

        with patch.object(scheduler, 'run_task', side_effect=RuntimeError('network down')):
            scheduler._scheduled_run()

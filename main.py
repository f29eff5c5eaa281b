#!/usr/bin/env python3
"""
每日视频播放列表 - 主程序入口
Daily Playlist Curator - Main Entry Point

支持两种运行模式：
1. 定时调度模式（默认）：每天在配置的时间自动执行策展
2. 单次执行模式（--once）：立即执行一次策展后退出

使用方法 Usage:
    # 启动定时调度
    python main.py

    # 单次执行
    python main.py --once

    # 只看最近 24 小时，不做话题聚类
    python main.py --once --lookback-hours 24 --no-cluster

    # 使用自定义配置
    python main.py --config my_config.yaml --once
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

from daily_playlist.config import ConfigError, load_config_with_defaults
from daily_playlist.scheduler import Scheduler


# 配置日志格式
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(verbose: bool = False) -> None:
    """
    配置日志系统
    Setup logging system

    Args:
        verbose: 是否启用详细日志（DEBUG级别）
                 Whether to enable verbose logging (DEBUG level)
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # 降低第三方库的日志级别
    # Reduce log level for third-party libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('yt_dlp').setLevel(logging.WARNING)
    logging.getLogger('schedule').setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    解析命令行参数
    Parse command line arguments
    """
    parser = argparse.ArgumentParser(
        description='每日视频播放列表 - 频道策展与话题聚类 / Daily playlist curator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
运行模式 Modes:
  默认模式    启动定时调度，每天在配置的时间自动执行策展
  --once      单次执行模式，立即执行一次策展后退出

示例 Examples:
  python main.py
  python main.py --once
  python main.py --once --lookback-hours 24 --threshold 0.4
  python main.py --config my_config.yaml --once --verbose

运行中按 Ctrl+C 会取消抓取并写出已完成的部分结果；再按一次立即退出。
Ctrl+C during a run cancels fetching and still writes the partial playlist;
press it again to abort immediately.
        """
    )

    # 运行模式参数
    mode_group = parser.add_argument_group('运行模式 Mode Options')
    mode_group.add_argument(
        '--once', '-1',
        action='store_true',
        help='单次执行模式：立即执行一次策展后退出 / Run once and exit'
    )

    # 配置参数
    config_group = parser.add_argument_group('配置选项 Config Options')
    config_group.add_argument(
        '--config', '-c',
        type=str,
        default='config.yaml',
        help='配置文件路径 (默认: config.yaml) / Config file path (default: config.yaml)'
    )
    config_group.add_argument(
        '--env',
        type=str,
        default=None,
        help='.env文件路径 (默认: 自动查找) / .env file path (default: auto-discover)'
    )

    # 运行参数
    run_group = parser.add_argument_group('运行参数 Run Options')
    run_group.add_argument(
        '--lookback-hours',
        type=float,
        default=None,
        help='时间窗口小时数 (默认: 配置值或 48) / Lookback window in hours (default: config or 48)'
    )
    run_group.add_argument(
        '--threshold',
        type=float,
        default=None,
        help='话题聚类相似度阈值 (默认: 配置值或 0.35) / Clustering similarity threshold (default: config or 0.35)'
    )
    run_group.add_argument(
        '--no-cluster',
        action='store_true',
        help='跳过话题聚类 / Skip topic clustering'
    )

    # 通用参数
    general_group = parser.add_argument_group('通用选项 General Options')
    general_group.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='启用详细日志输出 / Enable verbose logging'
    )

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict:
    """
    命令行参数转换为编排器覆盖值
    Turn CLI flags into orchestrator overrides
    """
    overrides = {}
    if args.lookback_hours is not None:
        overrides['lookback_hours'] = args.lookback_hours
    if args.threshold is not None:
        overrides['similarity_threshold'] = args.threshold
    if args.no_cluster:
        overrides['cluster_enabled'] = False
    return overrides


def install_interrupt_handler(scheduler: Scheduler, logger: logging.Logger) -> None:
    """
    第一次 Ctrl+C 取消运行并保留部分结果，第二次直接中断
    First Ctrl+C cancels and keeps partial results, the second one aborts
    """
    def handler(signum, frame):
        if scheduler.cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Interrupt received, finishing with partial results (Ctrl+C again to abort)")
        scheduler.stop()

    signal.signal(signal.SIGINT, handler)


def run_once_mode(scheduler: Scheduler, logger: logging.Logger) -> int:
    """
    运行单次执行模式
    Run once mode

    Returns:
        退出码
    """
    logger.info("执行单次策展...")
    try:
        report = scheduler.run_once()
    except KeyboardInterrupt:
        logger.info("用户中断，程序退出")
        return 130
    except ConfigError as e:
        logger.error(f"配置错误: {e}")
        return 2
    except Exception as e:
        logger.error(f"策展执行失败: {e}", exc_info=True)
        return 1

    print(f"\n{'='*60}")
    print(f"Daily playlist {report.snapshot.date_str}: {report.summary()}")
    for diagnostics in report.diagnostics:
        status = 'FAILED' if diagnostics.failed else 'ok'
        print(
            f"  {diagnostics.source_name:<30} fetched={diagnostics.fetched:<3} "
            f"final={diagnostics.final:<3} {status}"
        )
    print(f"{'='*60}\n")
    return 0


def run_scheduled_mode(scheduler: Scheduler, logger: logging.Logger) -> int:
    """
    运行定时调度模式
    Run scheduled mode

    Returns:
        退出码
    """
    logger.info("启动定时调度模式...")
    logger.info(f"任务将在每天 {scheduler.schedule_time} 执行")

    try:
        scheduler.start()
        return 0
    except KeyboardInterrupt:
        logger.info("用户中断，程序退出")
        return 0
    except Exception as e:
        logger.error(f"调度器运行失败: {e}", exc_info=True)
        return 1


def main(argv: list[str] | None = None) -> int:
    """
    主函数
    Main function

    Returns:
        退出码：0表示成功，非0表示失败
        Exit code: 0 for success, non-zero for failure
    """
    args = parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error(f"配置文件不存在: {args.config}")
        print(f"错误: 配置文件不存在: {args.config}", file=sys.stderr)
        return 1

    try:
        config = load_config_with_defaults(str(config_path), args.env)
        logger.info(f"已加载配置文件: {config_path}")
    except Exception as e:
        logger.error(f"加载配置文件失败: {e}")
        print(f"错误: 加载配置文件失败: {e}", file=sys.stderr)
        return 1

    scheduler = Scheduler(config, build_overrides(args))
    install_interrupt_handler(scheduler, logger)

    if args.once:
        return run_once_mode(scheduler, logger)
    return run_scheduled_mode(scheduler, logger)


if __name__ == '__main__':
    sys.exit(main())

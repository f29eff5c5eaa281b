"""
已见条目存储模块
Seen-Item Store Module

记录已经进入过播放列表的视频 ID，供跨运行去重。
Records the video IDs that already made it into a playlist so later runs can
skip them.

- InMemorySeenStore: 进程内集合，用于测试和单次运行
- SQLiteSeenStore: SQLite 持久化，WAL 模式，锁定时指数退避重试
"""

import functools
import logging
import sqlite3
import threading
import time
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Callable, Protocol, TypeVar

from daily_playlist.models import RawItem

logger = logging.getLogger(__name__)

T = TypeVar('T')


def retry_on_locked(max_retries: int = 5, base_delay: float = 0.1):
    """
    装饰器：在数据库锁定时自动重试

    使用指数退避策略重试数据库操作。

    Args:
        max_retries: 最大重试次数
        base_delay: 基础延迟时间（秒）
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            last_exception = None
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    if "database is locked" not in str(e):
                        raise
                    last_exception = e
                    if attempt < max_retries:
                        delay = base_delay * (2 ** attempt)
                        logger.warning(
                            f"Seen store locked, retrying in {delay:.2f}s "
                            f"(attempt {attempt + 1}/{max_retries})"
                        )
                        time.sleep(delay)
            raise last_exception
        return wrapper
    return decorator


class SeenStore(Protocol):
    """
    已见集合接口
    Membership store over previously seen item IDs
    """

    def contains_many(self, ids: Iterable[str]) -> set[str]:
        """返回 ids 中已见过的子集 / Return the subset of ids already seen"""
        ...

    def mark_seen(self, items: Iterable[RawItem]) -> int:
        """记录条目为已见，返回新增数量 / Record items, return how many were new"""
        ...


class InMemorySeenStore:
    """进程内已见集合 / In-process seen set"""

    def __init__(self, ids: Iterable[str] | None = None):
        self._ids: set[str] = set(ids or [])
        self._lock = threading.Lock()

    def contains_many(self, ids: Iterable[str]) -> set[str]:
        with self._lock:
            return {i for i in ids if i in self._ids}

    def mark_seen(self, items: Iterable[RawItem]) -> int:
        with self._lock:
            before = len(self._ids)
            self._ids.update(item.id for item in items)
            return len(self._ids) - before

    def __len__(self) -> int:
        return len(self._ids)


class SQLiteSeenStore:
    """
    SQLite 已见集合
    SQLite-backed seen set

    Attributes:
        db_path: SQLite 数据库文件路径，':memory:' 为内存数据库
        timeout: 数据库锁等待超时时间（秒）
    """

    # SQLite 单条语句的变量数上限较低，分批查询
    QUERY_CHUNK_SIZE = 500

    def __init__(self, db_path: str, timeout: float = 30.0):
        self.db_path = db_path
        self.timeout = timeout
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """
        获取数据库连接（WAL 模式 + busy_timeout）
        Open the connection lazily in WAL mode with a busy timeout
        """
        if self._connection is None:
            if self.db_path != ':memory:':
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(
                self.db_path,
                timeout=self.timeout,
                check_same_thread=False
            )
            self._connection.execute("PRAGMA journal_mode=WAL")
            self._connection.execute(f"PRAGMA busy_timeout={int(self.timeout * 1000)}")
        return self._connection

    def close(self):
        """关闭数据库连接"""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @retry_on_locked(max_retries=5, base_delay=0.1)
    def init_db(self):
        """
        初始化表结构，表已存在时不重复创建
        Create the table if it does not exist yet
        """
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS seen_videos (
                video_id TEXT PRIMARY KEY,
                channel_name TEXT,
                title TEXT,
                upload_date TEXT,
                seen_at TEXT NOT NULL
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_seen_at ON seen_videos(seen_at)")
        conn.commit()
        logger.debug(f"Seen store ready at {self.db_path}")

    @retry_on_locked(max_retries=5, base_delay=0.1)
    def contains_many(self, ids: Iterable[str]) -> set[str]:
        id_list = list(dict.fromkeys(ids))
        found: set[str] = set()
        with self._lock:
            conn = self._get_connection()
            for start in range(0, len(id_list), self.QUERY_CHUNK_SIZE):
                chunk = id_list[start:start + self.QUERY_CHUNK_SIZE]
                placeholders = ','.join('?' for _ in chunk)
                rows = conn.execute(
                    f"SELECT video_id FROM seen_videos WHERE video_id IN ({placeholders})",
                    chunk,
                ).fetchall()
                found.update(row[0] for row in rows)
        return found

    @retry_on_locked(max_retries=5, base_delay=0.1)
    def mark_seen(self, items: Iterable[RawItem]) -> int:
        now = datetime.now().isoformat()
        rows = [(item.id, item.channel_name, item.title, item.upload_date, now) for item in items]
        if not rows:
            return 0
        with self._lock:
            conn = self._get_connection()
            before = conn.total_changes
            conn.executemany(
                """
                INSERT OR IGNORE INTO seen_videos
                    (video_id, channel_name, title, upload_date, seen_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                rows,
            )
            conn.commit()
            added = conn.total_changes - before
        logger.info(f"Marked {added} new videos as seen ({len(rows) - added} already known)")
        return added

    def count(self) -> int:
        with self._lock:
            row = self._get_connection().execute("SELECT COUNT(*) FROM seen_videos").fetchone()
        return int(row[0])

"""
价格表刷新缓存。
持有最近一次抓取的快照，有效期内直接返回；force=True 时总是重新抓取。
并发请求共享同一次刷新 (single-flight)，避免缓存过期瞬间的重复抓取。
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from agroquote.models import PriceSnapshot

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[PriceSnapshot]]


class RefreshCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.ttl = float(ttl_seconds)
        self._clock = clock
        self._snapshot: Optional[PriceSnapshot] = None
        self._loaded_at: Optional[float] = None
        self._lock: Optional[asyncio.Lock] = None
        # 已开始 / 最近完成的刷新序号
        self._started = 0
        self._completed = 0

    def is_fresh(self) -> bool:
        if self._snapshot is None or self._loaded_at is None:
            return False
        return (self._clock() - self._loaded_at) < self.ttl

    def peek(self) -> Optional[PriceSnapshot]:
        """返回最近一次成功抓取的快照 (可能已过期)，供能容忍旧数据的调用方使用。"""
        return self._snapshot

    def invalidate(self) -> None:
        self._loaded_at = None

    async def get(self, loader: Loader, force: bool = False) -> PriceSnapshot:
        if not force and self.is_fresh():
            logger.debug("价格缓存命中")
            return self._snapshot

        if self._lock is None:
            self._lock = asyncio.Lock()

        # 只能复用在本次调用之后才开始的刷新
        started_before = self._started
        async with self._lock:
            if force and self._completed > started_before:
                return self._snapshot
            if not force and self.is_fresh():
                return self._snapshot

            logger.info("刷新价格表 (force=%s)", force)
            self._started += 1
            refresh_id = self._started
            # 抓取失败时异常直接抛出，旧快照保持不变
            snapshot = await loader()
            self._snapshot = snapshot
            self._loaded_at = self._clock()
            self._completed = refresh_id
            return snapshot

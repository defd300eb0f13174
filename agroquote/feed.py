"""
价格表数据源。
核心层只依赖 FeedSource 接口：异步返回原始单元格 (第一行为表头) 和两个可选元数据单元格。
"""
import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol

import pandas as pd
from openpyxl import load_workbook

from agroquote.errors import ConfigurationError, FeedUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class RawFeed:
    rows: List[List[Any]] = field(default_factory=list)
    version: Any = None
    rate: Any = None


class FeedSource(Protocol):
    async def fetch(self) -> RawFeed:
        ...


class StaticFeedSource:
    """内存中的价格表，数据由调用方直接给出 (例如测试)，不读取外部文件。"""

    def __init__(self, rows: List[List[Any]], version: Any = None, rate: Any = None):
        self.rows = [list(r) for r in rows]
        self.version = version
        self.rate = rate

    async def fetch(self) -> RawFeed:
        return RawFeed(rows=[list(r) for r in self.rows], version=self.version, rate=self.rate)


class ExcelFeedSource:
    """
    从 Excel 工作簿读取价格表。
    - 数据区：pandas 按无表头模式读取，第一行为表头
    - 元数据：openpyxl 读取指定单元格 (例如 "H1" 版本号、"H2" 汇率)
    读取在线程池中执行，不阻塞事件循环。
    """

    def __init__(
        self,
        path: str,
        sheet_name: Optional[str] = None,
        version_cell: str = "",
        rate_cell: str = ""
    ):
        if not path:
            raise ConfigurationError("未配置价格表路径 (AGROQUOTE_FEED_PATH)")
        self.path = path
        self.sheet_name = sheet_name
        self.version_cell = version_cell
        self.rate_cell = rate_cell

    async def fetch(self) -> RawFeed:
        return await asyncio.to_thread(self._read)

    def _read(self) -> RawFeed:
        if not os.path.exists(self.path):
            raise FeedUnavailableError(f"价格表文件不存在: {self.path}")

        try:
            df = pd.read_excel(self.path, sheet_name=self.sheet_name or 0, header=None, dtype=object)
            version, rate = self._read_meta_cells()
        except FeedUnavailableError:
            raise
        except Exception as e:
            raise FeedUnavailableError(f"价格表读取失败: {e}") from e

        # 数据区之外的整空行/整空列不参与解析
        df = df.dropna(how="all").dropna(axis=1, how="all")
        rows = df.where(pd.notna(df), None).values.tolist()
        logger.info("读取价格表 %s: %d 行", self.path, len(rows))
        return RawFeed(rows=rows, version=version, rate=rate)

    def _read_meta_cells(self):
        if not self.version_cell and not self.rate_cell:
            return None, None

        wb = load_workbook(self.path, data_only=True)
        try:
            ws = wb[self.sheet_name] if self.sheet_name else wb.worksheets[0]
            version = ws[self.version_cell].value if self.version_cell else None
            rate = ws[self.rate_cell].value if self.rate_cell else None
        except KeyError as e:
            raise FeedUnavailableError(f"工作表不存在: {e}") from e
        finally:
            wb.close()
        return version, rate

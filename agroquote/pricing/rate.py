"""
汇率推断模块。
未配置有效汇率时，根据同时带有两种货币价格的记录推断汇率 (取中位数)。
"""
import math
from typing import Iterable, List, Optional

from agroquote.canon import parse_number
from agroquote.models import PriceRecord


def collect_ratios(records: Iterable[PriceRecord]) -> List[float]:
    """收集 本地价/参考价 比值，只保留两种价格都为正的记录。"""
    ratios = []
    for r in records:
        if r.price_ref > 0 and r.price_local > 0:
            ratio = r.price_local / r.price_ref
            if math.isfinite(ratio) and ratio > 0:
                ratios.append(ratio)
    return sorted(ratios)


def median(values: List[float]) -> Optional[float]:
    """
    中位数：偶数个取中间两个的平均值，奇数个取中间值。
    空列表返回 None。
    """
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def infer_rate(records: Iterable[PriceRecord], default_rate: float) -> float:
    """
    推断汇率，无可用比值时返回配置的默认汇率。
    必须在回填本地价格之前调用，否则回填值会参与计算。
    """
    inferred = median(collect_ratios(records))
    return inferred if inferred is not None else default_rate


def parse_rate(val) -> Optional[float]:
    """解析显式汇率单元格 (支持逗号小数)，非正数或无法解析时返回 None。"""
    rate = parse_number(val)
    return rate if rate > 0 else None

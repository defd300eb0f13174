"""
价格索引模块。
从规范化后的价格记录一次性构建三个查找表：原始 SKU、规范 SKU、基础名 + 包装。
"""
from types import MappingProxyType
from typing import Dict, Iterable, Tuple

from agroquote.canon import canon_name, canon_sku, split_sku
from agroquote.models import PriceIndex, PriceRecord


def base_pack_key(base: str, unit: str, size: float) -> Tuple[str, str, float]:
    return (canon_name(base), unit, float(size))


def build_price_index(records: Iterable[PriceRecord]) -> PriceIndex:
    """
    构建价格索引。纯函数：相同输入得到相同索引。
    键冲突时后出现的记录覆盖先出现的记录。
    """
    records = tuple(records)
    by_sku: Dict[str, PriceRecord] = {}
    by_canon: Dict[str, PriceRecord] = {}
    by_base_pack: Dict[Tuple[str, str, float], PriceRecord] = {}

    for r in records:
        sku = str(r.sku or "").strip()
        if not sku:
            continue

        by_sku[sku] = r
        by_canon[canon_sku(sku)] = r

        parts = split_sku(sku)
        if parts.base and parts.pack:
            by_base_pack[base_pack_key(parts.base, parts.pack.unit, parts.pack.size)] = r

    return PriceIndex(
        records=records,
        by_sku=MappingProxyType(by_sku),
        by_canonical_sku=MappingProxyType(by_canon),
        by_base_and_pack=MappingProxyType(by_base_pack),
    )

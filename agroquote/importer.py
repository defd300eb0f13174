"""
价格表导入模块。
负责把外部表格 (表头不统一、单位混杂、可能缺值) 转换为规范化的 PriceRecord 列表，
并确定本次使用的汇率和版本号。
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Sequence

import pandas as pd

from agroquote.canon import canon_unit, fold, parse_number, round2
from agroquote.models import CATEGORY_ORDER, DEFAULT_CATEGORY, PriceRecord
from agroquote.pricing.rate import collect_ratios, infer_rate, parse_rate

logger = logging.getLogger(__name__)

# 列名映射字典 (目标字段 -> 可能的表头，比较时忽略大小写和重音)
COLUMN_MAPPING = {
    "category": ["tipo", "categoria", "category"],
    "product": ["producto", "nombre", "product", "name"],
    "presentation": ["presentacion", "envase", "presentation"],
    "unit": ["unidad", "unid", "unit"],
    "price_ref": ["precio (usd)", "precio usd", "usd", "precio_usd"],
    "price_local": ["precio (bs)", "precio bs", "bs", "precio_bs"],
}


@dataclass
class NormalizedFeed:
    records: List[PriceRecord]
    rate: float
    version: str
    rate_source: str


def normalize_feed(
    rows: Sequence[Sequence[Any]],
    version: Any = None,
    rate: Any = None,
    default_rate: float = 6.96
) -> NormalizedFeed:
    """
    规范化价格表。
    rows 第一行为表头；version / rate 为可选的元数据单元格值。
    """
    records = parse_rows(rows)

    # 先确定汇率 (只用两种价格都有的行)，再回填缺失的本地价格
    explicit = parse_rate(rate)
    if explicit is not None:
        final_rate, source = explicit, "explicit"
    else:
        final_rate = infer_rate(records, default_rate)
        source = "inferred" if collect_ratios(records) else "default"
        if _cell_text(rate):
            logger.warning("汇率单元格无法解析: %r，使用%s汇率 %s", rate,
                           "默认" if source == "default" else "推断", final_rate)

    records = sort_records(backfill_local_prices(records, final_rate))

    version_label = _cell_text(version)
    if not version_label:
        version_label = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    logger.info("价格表规范化完成: %d 条记录, 汇率=%s (%s), 版本=%s",
                len(records), final_rate, source, version_label)
    return NormalizedFeed(records=records, rate=final_rate, version=version_label, rate_source=source)


def parse_rows(rows: Sequence[Sequence[Any]]) -> List[PriceRecord]:
    """把原始行解析为 PriceRecord (尚未回填本地价格、尚未排序)。"""
    if not rows:
        return []

    # 不规则的行由 DataFrame 自动补齐为空值
    df = pd.DataFrame([list(r) for r in rows])
    if df.empty:
        return []

    header = [_cell_text(v) for v in df.iloc[0].tolist()]
    col_map = _build_column_map(header)
    if "product" not in col_map:
        logger.warning("价格表缺少商品列，表头: %s", header)

    records = []
    for values in df.iloc[1:].itertuples(index=False):
        row = list(values)

        def cell(key: str) -> Any:
            idx = col_map.get(key)
            return row[idx] if idx is not None else None

        product = _cell_text(cell("product"))
        presentation = _cell_text(cell("presentation"))
        if not product and not presentation:
            continue

        sku = f"{product}-{presentation}" if presentation else product
        records.append(PriceRecord(
            sku=sku,
            category=_parse_category(cell("category")),
            unit=canon_unit(_cell_text(cell("unit"))),
            price_ref=_parse_price(cell("price_ref")),
            price_local=_parse_price(cell("price_local")),
            product=product,
            presentation=presentation,
        ))
    return records


def backfill_local_prices(records: List[PriceRecord], rate: float) -> List[PriceRecord]:
    """本地价格缺失而参考价格存在时，按汇率回填。"""
    return [
        replace(r, price_local=round2(r.price_ref * rate))
        if r.price_ref > 0 and r.price_local == 0 else r
        for r in records
    ]


def sort_records(records: List[PriceRecord]) -> List[PriceRecord]:
    """按类目固定优先级排序，类目内按 SKU 字典序。"""
    def key(r: PriceRecord):
        rank = CATEGORY_ORDER.index(r.category) if r.category in CATEGORY_ORDER else len(CATEGORY_ORDER)
        return (rank, r.sku)
    return sorted(records, key=key)


# ==========================================
# 内部辅助函数
# ==========================================

def _build_column_map(header: List[str]) -> Dict[str, int]:
    """
    根据预定义的映射表，找到每个字段对应的列位置。
    同一字段有多个候选列时，取最靠左的一列。
    返回: { "internal_key": column_index }
    """
    result = {}
    folded = [fold(h) for h in header]
    for key, candidates in COLUMN_MAPPING.items():
        synonyms = {fold(c) for c in candidates}
        for idx, label in enumerate(folded):
            if label in synonyms:
                result[key] = idx
                break
    return result


def _cell_text(val: Any) -> str:
    """单元格转文本，空值 (None / NaN) 返回空字符串。"""
    if val is None:
        return ""
    try:
        if pd.isna(val):
            return ""
    except (TypeError, ValueError):
        pass
    return str(val).strip()


def _parse_price(val: Any) -> float:
    """价格单元格：非数值为 0，负数视为 0，保留两位小数。"""
    return round2(max(parse_number(val), 0.0))


def _parse_category(val: Any) -> str:
    t = fold(_cell_text(val))
    if t.startswith("inse"):
        return "insecticide"
    if t.startswith("fung"):
        return "fungicide"
    return DEFAULT_CATEGORY

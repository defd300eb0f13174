"""
价格匹配层级。
每一层都是独立的纯函数 (index, request) -> Optional[PriceRecord]，
按 TIERS 中的固定顺序依次尝试，第一个命中的层级生效。
"""
from typing import Callable, List, Optional, Tuple

from agroquote.canon import canon_sku, parse_pack, split_sku
from agroquote.models import PriceIndex, PriceRecord, PriceRequest
from agroquote.pricing.index import base_pack_key

Tier = Callable[[PriceIndex, PriceRequest], Optional[PriceRecord]]


def exact_sku(index: PriceIndex, req: PriceRequest) -> Optional[PriceRecord]:
    """1) 原始 SKU 精确匹配"""
    return index.by_sku.get(str(req.sku or "").strip())


def canonical_sku(index: PriceIndex, req: PriceRequest) -> Optional[PriceRecord]:
    """2) 规范 SKU 匹配 (空格/大小写/单位写法差异)"""
    return index.by_canonical_sku.get(canon_sku(req.sku))


def rebuilt_sku(index: PriceIndex, req: PriceRequest) -> Optional[PriceRecord]:
    """3) 用 商品名-规格 重新拼出 SKU 再做规范匹配"""
    name = str(req.name or "").strip()
    presentation = str(req.presentation or "").strip()
    if not name or not presentation:
        return None
    return index.by_canonical_sku.get(canon_sku(f"{name}-{presentation}"))


def base_and_pack(index: PriceIndex, req: PriceRequest) -> Optional[PriceRecord]:
    """4) 基础名 + 包装 (20L、200L、1KG 等) 匹配"""
    parts = split_sku(req.sku)
    base = str(req.name or "").strip() or parts.base
    pack = parse_pack(req.presentation) or parts.pack
    if not base or not pack:
        return None
    return index.by_base_and_pack.get(base_pack_key(base, pack.unit, pack.size))


TIERS: List[Tuple[str, Tier]] = [
    ("exact_sku", exact_sku),
    ("canonical_sku", canonical_sku),
    ("rebuilt_sku", rebuilt_sku),
    ("base_and_pack", base_and_pack),
]

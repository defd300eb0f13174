"""
价格解析引擎模块。
按层级顺序在价格索引中查找记录，并把价格换算为参考货币 (USD)。
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from agroquote.canon import round2
from agroquote.models import PriceIndex, PriceRecord, PriceRequest
from agroquote.pricing.tiers import TIERS, Tier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """
    价格解析结果。
    found 为 False 时价格为 0：表示没找到，而不是免费，由调用方决定如何处理。
    """
    price: float
    record: Optional[PriceRecord] = None
    tier: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.record is not None


def match_record(
    index: PriceIndex,
    req: PriceRequest,
    tiers: List[Tuple[str, Tier]] = TIERS
) -> Tuple[Optional[PriceRecord], Optional[str]]:
    """依次尝试各层级，返回 (记录, 命中的层级名)。"""
    for name, tier in tiers:
        record = tier(index, req)
        if record is not None:
            return record, name
    return None, None


def ref_price(record: PriceRecord, rate: float) -> float:
    """
    记录的参考货币价格。
    参考价为 0 但本地价为正时，用本地价 / 汇率换算。
    """
    usd = float(record.price_ref or 0)
    local = float(record.price_local or 0)
    if not usd and local and rate > 0:
        usd = local / rate
    return round2(usd)


def resolve(index: PriceIndex, req: PriceRequest, rate: float) -> Resolution:
    record, tier = match_record(index, req)
    if record is None:
        logger.info("未找到价格: sku=%r name=%r presentation=%r", req.sku, req.name, req.presentation)
        return Resolution(price=0.0)
    return Resolution(price=ref_price(record, rate), record=record, tier=tier)


def resolve_price(index: PriceIndex, req: PriceRequest, rate: float) -> float:
    """只返回单价 (>= 0)，未找到时为 0。"""
    return resolve(index, req, rate).price

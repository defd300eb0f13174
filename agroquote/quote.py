"""
报价单组装模块。
根据购物车条目和价格表快照计算每行单价、小计和合计。
"""
import logging
import re
import time
import uuid
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from agroquote.canon import canon_unit, round2
from agroquote.config import MIN_ORDER_USD, REFERENCE_CURRENCY
from agroquote.models import (
    CartRequestItem, Customer, PLACEHOLDER, PriceRequest, PriceSnapshot, Quote, QuoteLine
)
from agroquote.pricing.engine import resolve
from agroquote.reference import ProductReference

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"\d*[.,]?\d+")

CartLike = Union[CartRequestItem, Mapping[str, Any]]


def parse_quantity(text: Any) -> Tuple[float, str]:
    """
    解析数量文本，例如 "40 l" -> (40.0, "L")、"2,5 kilos" -> (2.5, "KG")。
    数量取第一个数字 (没有则为 0)，单位按关键字判断，缺省为 UNID。
    """
    t = str(text or "").lower()
    m = _NUMBER_RE.search(t)
    qty = float(m.group(0).replace(",", ".")) if m else 0.0

    unit = "UNID"
    if re.search(r"kg|kilo", t):
        unit = "KG"
    elif re.search(r"\b(l|lt|litro)s?\b", t):
        unit = "L"
    elif re.search(r"uni|und", t):
        unit = "UNID"
    return qty, unit


def assemble_quote(
    cart: Iterable[CartLike],
    snapshot: PriceSnapshot,
    customer: Optional[Customer] = None,
    reference: Optional[ProductReference] = None,
    now: Optional[datetime] = None,
    minimum_order: float = MIN_ORDER_USD,
    currency: str = REFERENCE_CURRENCY
) -> Quote:
    """
    组装报价单。不修改传入的购物车。
    找不到价格的行单价为 0 (price_found=False)，不会抛异常。
    最低起订金额只记录在报价单上，是否拦截由调用方决定。
    """
    reference = reference or ProductReference()
    now = now or datetime.now()

    lines = []
    for raw in cart:
        item = raw if isinstance(raw, CartRequestItem) else CartRequestItem.from_dict(raw)
        lines.append(_build_line(item, snapshot, reference))

    subtotal = round2(sum(line.line_subtotal_ref for line in lines))
    total = subtotal

    quote = Quote(
        id=f"COT-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8].upper()}",
        timestamp=now.isoformat(timespec="seconds"),
        rate=snapshot.rate,
        customer=customer or Customer(),
        lines=tuple(lines),
        subtotal_ref=subtotal,
        total_ref=total,
        minimum_order_ref=minimum_order,
        currency=currency,
        version=snapshot.version,
        price_catalog=snapshot.records,
    )
    logger.info("报价单 %s: %d 行, 合计 %s %s, 未定价 %d 行",
                quote.id, len(lines), total, currency, len(quote.unpriced_lines))
    return quote


def _build_line(item: CartRequestItem, snapshot: PriceSnapshot, reference: ProductReference) -> QuoteLine:
    sku = item.sku.strip()
    qty, qty_unit = parse_quantity(item.quantity_text)
    prod = reference.find(sku, item.name)

    name = (item.name or (prod.name if prod else "")).strip()
    package = item.presentation or (", ".join(prod.presentations) if prod else "")

    result = resolve(
        snapshot.index,
        PriceRequest(sku=sku, name=name, presentation=item.presentation),
        snapshot.rate,
    )
    unit_price = round2(result.price)

    return QuoteLine(
        sku=sku,
        display_name=name or sku or "-",
        package_label=package,
        unit=canon_unit(qty_unit or (prod.unit if prod else "")) or "UNID",
        quantity=qty,
        unit_price_ref=unit_price,
        line_subtotal_ref=round2(qty * unit_price),
        active_ingredient=prod.active_ingredient if prod else "",
        price_found=result.found,
    )


# ==========================================
# 会话适配 (对话状态机保存的会话结构)
# ==========================================

def cart_from_session(session: Mapping[str, Any]) -> List[CartRequestItem]:
    """
    从会话中取出购物车：优先使用 vars.cart；
    购物车为空时，用最后选择的商品 + 数量组成一行；都没有则为空列表。
    """
    v = (session or {}).get("vars") or {}
    cart = v.get("cart") or []
    if cart:
        return [CartRequestItem.from_dict(it) for it in cart if isinstance(it, Mapping)]

    if v.get("last_sku") and v.get("cantidad"):
        return [CartRequestItem(
            sku=str(v.get("last_sku") or "").strip(),
            name=str(v.get("last_product") or "").strip(),
            presentation=str(v.get("last_presentacion") or "").strip(),
            quantity_text=str(v.get("cantidad") or "").strip(),
        )]
    return []


def customer_from_session(session: Mapping[str, Any]) -> Customer:
    session = session or {}
    v = session.get("vars") or {}
    crops = v.get("cultivos") or []
    if isinstance(crops, str):
        crops = [crops]

    def text(val: Any) -> str:
        return str(val).strip() if val not in (None, "") else PLACEHOLDER

    return Customer(
        name=str(session.get("profileName") or "").strip() or "Cliente",
        department=text(v.get("departamento")),
        zone=text(v.get("subzona")),
        crop=text(crops[0] if crops else None),
        hectares=text(v.get("hectareas")),
        campaign=text(v.get("campana")),
    )

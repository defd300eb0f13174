"""
规范化工具模块。
提供单位、SKU、商品名和包装规格的规范化函数，全部为无状态纯函数。
"""
import math
import re
import unicodedata
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from agroquote.models import Pack, SkuParts

_LITRE_SKU_RE = re.compile(r"LITROS?|LTS?")
_KILO_SKU_RE = re.compile(r"KILOS?|KGS?")

_PACK_RE = re.compile(
    r"(\d+(?:[.,]\d+)?)\s*(L|LT|LTS|LITROS?|KG|KGS?|KILOS?)", re.IGNORECASE
)
_KILO_WORD_RE = re.compile(r"KG|KILO", re.IGNORECASE)


def strip_accents(text: str) -> str:
    """去除变音符号 (á -> a, ñ -> n)。"""
    decomposed = unicodedata.normalize("NFD", str(text or ""))
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold(text: Any) -> str:
    """大小写和变音符号不敏感的比较键，用于表头和商品名匹配。"""
    return strip_accents(str(text or "")).strip().lower()


def canon_unit(text: Any) -> str:
    """
    单位规范化：
    - "kg" 开头或包含 "kilo" -> KG
    - "l" 开头或包含 "lt"/"litro" -> L
    - "unid"/"und" 开头或包含 "unidad" -> UNID
    - 其余情况返回原值大写 (可能为空)
    """
    t = str(text or "").strip().lower()
    if re.search(r"^kg|kilo", t):
        return "KG"
    if re.search(r"^l|lt|litro", t):
        return "L"
    if re.search(r"^unid|^und|unidad", t):
        return "UNID"
    return t.upper()


def canon_sku(sku: Any) -> str:
    """
    SKU 规范化：去空白、转大写，并将升/千克的各种写法统一为 L / KG。
    例如 "Fix - 20 Lts" -> "FIX-20L"。
    """
    s = re.sub(r"\s+", "", str(sku or "").strip().upper())
    # 替换到不再变化为止，保证幂等
    while True:
        replaced = _KILO_SKU_RE.sub("KG", _LITRE_SKU_RE.sub("L", s))
        if replaced == s:
            return s
        s = replaced


def canon_name(text: Any) -> str:
    """商品名规范化，仅用于基础名比较，不用于展示。"""
    return re.sub(r"[^A-Za-z0-9]", "", strip_accents(str(text or ""))).upper()


def parse_pack(text: Any) -> Optional[Pack]:
    """
    从自由文本中提取包装规格 <数字><单位>，例如 "Bidón 20 lts" -> Pack(20.0, "L")。
    没有匹配或数值非正时返回 None (表示没有包装信息，而不是 0)。
    """
    m = _PACK_RE.search(str(text or ""))
    if not m:
        return None
    try:
        size = float(m.group(1).replace(",", "."))
    except ValueError:
        return None
    if not math.isfinite(size) or size <= 0:
        return None
    unit = "KG" if _KILO_WORD_RE.search(m.group(2)) else "L"
    return Pack(size=size, unit=unit)


def split_sku(sku: Any) -> SkuParts:
    """
    按最后一个连字符拆分 SKU 为 (基础名, 包装)。
    原始数据格式不统一，包装部分依次尝试：原样、前缀 "-"、连字符替换为空格。
    """
    raw = str(sku or "").strip()
    canonical = canon_sku(raw)
    i = raw.rfind("-")
    if i < 0:
        return SkuParts(base=raw, pack=None, canonical=canonical)

    base, tail = raw[:i], raw[i + 1:]
    pack = (
        parse_pack(tail)
        or parse_pack("-" + tail)
        or parse_pack(tail.replace("-", " "))
    )
    return SkuParts(base=base, pack=pack, canonical=canonical)


def parse_number(val: Any) -> float:
    """安全解析数值，支持逗号小数。无法解析时返回 0.0，不抛异常。"""
    if val is None or isinstance(val, bool):
        return 0.0
    if isinstance(val, (int, float)):
        return float(val) if math.isfinite(val) else 0.0
    text = re.sub(r"\s+", "", str(val)).replace(",", ".")
    if not text:
        return 0.0
    try:
        num = float(text)
    except ValueError:
        return 0.0
    return num if math.isfinite(num) else 0.0


def round2(value: Any) -> float:
    """
    金额保留两位小数：先把浮点数放大 100 倍，对放大后的值四舍五入 (远离零)，再缩小 100 倍。
    例如 1.005 * 100 = 100.49999999999999，结果为 1.0 而不是 1.01。
    报价单中所有金额都使用这一规则。
    """
    try:
        num = float(value if value is not None else 0)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(num):
        return 0.0
    scaled = Decimal(num * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(scaled / 100)

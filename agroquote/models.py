"""
数据模型定义模块。
定义了项目中使用的核心数据结构：价格记录、价格索引、购物车条目和报价单。
"""
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

# 类目优先级 (同时决定价格表的输出顺序)
CATEGORY_ORDER = ("herbicide", "insecticide", "fungicide")
DEFAULT_CATEGORY = "herbicide"

# 占位值：客户信息缺失时使用
PLACEHOLDER = "ND"


@dataclass(frozen=True)
class PriceRecord:
    """
    价格表中的一条记录。
    price_ref 为参考货币 (USD) 价格，price_local 为本地货币 (Bs) 价格。
    """
    sku: str
    category: str = DEFAULT_CATEGORY
    unit: str = ""
    price_ref: float = 0.0
    price_local: float = 0.0

    # 原始展示文本 (生成 SKU 的来源)
    product: str = ""
    presentation: str = ""


@dataclass(frozen=True)
class Pack:
    """从文本中解析出的包装规格，例如 "20L" -> Pack(20.0, "L")。"""
    size: float
    unit: str


@dataclass(frozen=True)
class SkuParts:
    base: str
    pack: Optional[Pack]
    canonical: str


@dataclass(frozen=True)
class PriceIndex:
    """
    价格表的只读索引视图，每次刷新价格表时整体重建。
    """
    records: Tuple[PriceRecord, ...]
    by_sku: Mapping[str, PriceRecord]
    by_canonical_sku: Mapping[str, PriceRecord]
    by_base_and_pack: Mapping[Tuple[str, str, float], PriceRecord]


@dataclass(frozen=True)
class PriceSnapshot:
    """一次价格表抓取的结果 (缓存单元)。"""
    records: Tuple[PriceRecord, ...]
    index: PriceIndex
    rate: float
    version: str
    fetched_at: float
    rate_source: str = "explicit"


@dataclass(frozen=True)
class PriceRequest:
    """价格查询请求：SKU 和/或 商品名 + 规格。"""
    sku: str = ""
    name: str = ""
    presentation: str = ""


@dataclass
class CartRequestItem:
    """购物车中的一行请求，所有字段均为自由文本，可能缺失。"""
    sku: str = ""
    name: str = ""
    presentation: str = ""
    quantity_text: str = ""

    @classmethod
    def from_dict(cls, data: Mapping) -> "CartRequestItem":
        # 兼容会话中的西语字段名
        def pick(*keys):
            for k in keys:
                v = data.get(k)
                if v is not None and str(v).strip():
                    return str(v).strip()
            return ""

        return cls(
            sku=pick("sku"),
            name=pick("name", "nombre"),
            presentation=pick("presentation", "presentacion"),
            quantity_text=pick("quantity_text", "quantity", "cantidad"),
        )


@dataclass(frozen=True)
class Customer:
    name: str = "Cliente"
    department: str = PLACEHOLDER
    zone: str = PLACEHOLDER
    crop: str = PLACEHOLDER
    hectares: str = PLACEHOLDER
    campaign: str = PLACEHOLDER


@dataclass(frozen=True)
class QuoteLine:
    sku: str
    display_name: str
    package_label: str
    unit: str
    quantity: float
    unit_price_ref: float
    line_subtotal_ref: float
    active_ingredient: str = ""
    price_found: bool = True


@dataclass(frozen=True)
class Quote:
    """
    报价单。一次组装的产物，不可变，核心层不负责持久化。
    price_catalog 保存了组装时使用的价格表快照，供下游渲染查询。
    """
    id: str
    timestamp: str
    rate: float
    customer: Customer
    lines: Tuple[QuoteLine, ...]
    subtotal_ref: float
    total_ref: float
    minimum_order_ref: float
    currency: str = "USD"
    version: str = ""
    price_catalog: Tuple[PriceRecord, ...] = field(default_factory=tuple)

    @property
    def meets_minimum_order(self) -> bool:
        return self.total_ref >= self.minimum_order_ref

    @property
    def unpriced_lines(self) -> List[QuoteLine]:
        """未在价格表中找到价格的行 (是否拦截由调用方决定)。"""
        return [line for line in self.lines if not line.price_found]

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "rate": self.rate,
            "customer": vars(self.customer).copy(),
            "lines": [vars(line).copy() for line in self.lines],
            "subtotal_ref": self.subtotal_ref,
            "total_ref": self.total_ref,
            "minimum_order_ref": self.minimum_order_ref,
            "currency": self.currency,
            "version": self.version,
        }

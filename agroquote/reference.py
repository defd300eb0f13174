"""
商品资料 (展示用)。
购物车条目缺少商品名/规格时，从这里补齐展示字段。只做精确匹配，不参与定价。
"""
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from agroquote.canon import fold
from agroquote.errors import ConfigurationError

logger = logging.getLogger(__name__)

# 字段映射 (目标字段 -> 资料文件中可能的键名)
FIELD_MAPPING = {
    "sku": ["sku"],
    "name": ["nombre", "name"],
    "presentations": ["presentaciones", "presentations"],
    "active_ingredient": ["ingrediente_activo", "formulacion", "active_ingredient"],
    "unit": ["unidad", "unit"],
}


@dataclass
class ReferenceProduct:
    sku: str = ""
    name: str = ""
    presentations: List[str] = field(default_factory=list)
    active_ingredient: str = ""
    unit: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReferenceProduct":
        def pick(key: str) -> Any:
            for k in FIELD_MAPPING[key]:
                if data.get(k):
                    return data[k]
            return None

        presentations = pick("presentations") or []
        if isinstance(presentations, str):
            presentations = [presentations]
        return cls(
            sku=str(pick("sku") or ""),
            name=str(pick("name") or ""),
            presentations=[str(p) for p in presentations],
            active_ingredient=str(pick("active_ingredient") or ""),
            unit=str(pick("unit") or ""),
        )


class ProductReference:
    def __init__(self, products: Optional[List[ReferenceProduct]] = None):
        self.products = list(products or [])

    def find(self, sku: str = "", name: str = "") -> Optional[ReferenceProduct]:
        """先按 SKU 精确匹配，再按商品名 (忽略大小写和重音) 精确匹配。"""
        s = str(sku or "").strip()
        if s:
            for p in self.products:
                if p.sku == s:
                    return p
        if name:
            n = fold(name)
            for p in self.products:
                if fold(p.name) == n:
                    return p
        return None

    @classmethod
    def from_records(cls, rows: List[Dict[str, Any]]) -> "ProductReference":
        return cls([ReferenceProduct.from_dict(r) for r in rows if isinstance(r, dict)])

    @classmethod
    def load(cls, path: str) -> "ProductReference":
        """从 JSON 文件加载。文件不存在时返回空资料，格式错误时报配置错误。"""
        if not path:
            return cls()
        if not os.path.exists(path):
            logger.warning("商品资料文件不存在: %s", path)
            return cls()
        try:
            with open(path, "r", encoding="utf-8") as f:
                rows = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"商品资料文件无法解析: {path}: {e}") from e
        if not isinstance(rows, list):
            raise ConfigurationError(f"商品资料文件应为列表: {path}")
        return cls.from_records(rows)

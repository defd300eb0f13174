"""
业务服务层，遵循单一职责原则拆分为独立服务。
- PriceCatalogService: 价格表查询 (带刷新缓存)
- QuoteService: 报价单组装
"""
import logging
import time
from typing import Any, List, Mapping, Optional, Sequence, Union

from agroquote.cache import RefreshCache
from agroquote.canon import canon_sku
from agroquote.config import Settings
from agroquote.errors import AgroquoteError, ConfigurationError, FeedUnavailableError, QuoteAssemblyError
from agroquote.feed import ExcelFeedSource, FeedSource
from agroquote.importer import normalize_feed
from agroquote.models import CartRequestItem, Customer, PriceRecord, PriceSnapshot, Quote
from agroquote.pricing.index import build_price_index
from agroquote.quote import assemble_quote, cart_from_session, customer_from_session
from agroquote.reference import ProductReference

logger = logging.getLogger(__name__)


class PriceCatalogService:
    """
    价格表服务：负责抓取、规范化、建索引，并通过 RefreshCache 控制外部调用频率。
    """
    def __init__(self, source: FeedSource, settings: Optional[Settings] = None):
        self.source = source
        self.settings = settings or Settings()
        self.cache = RefreshCache(self.settings.cache_ttl)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PriceCatalogService":
        source = ExcelFeedSource(
            settings.feed_path,
            sheet_name=settings.sheet_name,
            version_cell=settings.version_cell,
            rate_cell=settings.rate_cell,
        )
        return cls(source, settings)

    async def _load(self) -> PriceSnapshot:
        try:
            raw = await self.source.fetch()
        except AgroquoteError:
            raise
        except Exception as e:
            logger.exception("价格表抓取失败")
            raise FeedUnavailableError(str(e)) from e

        feed = normalize_feed(raw.rows, version=raw.version, rate=raw.rate,
                              default_rate=self.settings.default_rate)
        records = tuple(feed.records)
        return PriceSnapshot(
            records=records,
            index=build_price_index(records),
            rate=feed.rate,
            version=feed.version,
            fetched_at=time.time(),
            rate_source=feed.rate_source,
        )

    async def get_prices(self, force: bool = False) -> PriceSnapshot:
        """有效期内返回缓存；force=True 或过期时重新抓取。"""
        return await self.cache.get(self._load, force=force)

    async def list_prices(self) -> List[PriceRecord]:
        """按类目、SKU 排序的价格列表。"""
        snapshot = await self.get_prices()
        return list(snapshot.records)

    async def get_by_sku(self, sku: str) -> Optional[PriceRecord]:
        snapshot = await self.get_prices()
        return snapshot.index.by_sku.get(str(sku or "").strip())

    async def find_price(self, name: str, presentation: str = "") -> Optional[PriceRecord]:
        """只按 商品名-规格 拼出的规范 SKU 查找 (简单查询，不走完整的分层解析)。"""
        name = str(name or "").strip()
        presentation = str(presentation or "").strip()
        if not name:
            return None
        candidate = f"{name}-{presentation}" if presentation else name
        snapshot = await self.get_prices()
        return snapshot.index.by_canonical_sku.get(canon_sku(candidate))


class QuoteService:
    """
    报价服务：拉取 (缓存或最新的) 价格表快照，组装报价单。
    纯内存操作，不持久化报价单。
    """
    def __init__(
        self,
        catalog: PriceCatalogService,
        reference: Optional[ProductReference] = None,
        settings: Optional[Settings] = None
    ):
        self.catalog = catalog
        self.reference = reference or ProductReference()
        self.settings = settings or catalog.settings

    async def assemble_quote(
        self,
        session_cart: Union[Mapping[str, Any], Sequence[Any]],
        customer_info: Optional[Union[Customer, Mapping[str, Any]]] = None
    ) -> Quote:
        """
        session_cart 可以是购物车条目列表，也可以是完整的会话字典。
        customer_info 缺省时从会话中读取。
        """
        snapshot = await self.catalog.get_prices()
        try:
            cart, customer = _split_session(session_cart, customer_info)
            return assemble_quote(
                cart,
                snapshot,
                customer=customer,
                reference=self.reference,
                minimum_order=self.settings.min_order,
                currency=self.settings.currency,
            )
        except Exception as e:
            logger.exception("报价单组装失败")
            raise QuoteAssemblyError(str(e)) from e


def _split_session(session_cart, customer_info):
    if isinstance(session_cart, Mapping):
        cart = cart_from_session(session_cart)
        customer = customer_info if customer_info is not None else customer_from_session(session_cart)
    else:
        cart = [
            it if isinstance(it, CartRequestItem) else CartRequestItem.from_dict(it)
            for it in session_cart
        ]
        customer = customer_info

    if isinstance(customer, Mapping):
        customer = Customer(**{k: str(v) for k, v in customer.items()
                               if k in Customer.__dataclass_fields__ and v not in (None, "")})
    return cart, customer


def build_services(settings: Settings):
    """按配置创建价格表服务和报价服务。"""
    if not settings.feed_path:
        raise ConfigurationError("未配置价格表路径 (AGROQUOTE_FEED_PATH)")
    catalog = PriceCatalogService.from_settings(settings)
    reference = ProductReference.load(settings.reference_path)
    return catalog, QuoteService(catalog, reference, settings)

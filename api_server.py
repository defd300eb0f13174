"""
价格查询与报价 HTTP 接口。
对外只暴露通用错误提示 (price_data_unavailable / quote_failed)，细节写入日志。
"""
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from agroquote.config import Settings
from agroquote.errors import FeedUnavailableError, QuoteAssemblyError
from agroquote.exporter import generate_prices_bytes, generate_quote_bytes
from agroquote.logging_config import setup_logging
from agroquote.service import PriceCatalogService, QuoteService, build_services

logger = logging.getLogger(__name__)


class CartItem(BaseModel):
    sku: str = ""
    name: str = ""
    presentation: str = ""
    quantity_text: str = ""


class CustomerInfo(BaseModel):
    name: Optional[str] = None
    department: Optional[str] = None
    zone: Optional[str] = None
    crop: Optional[str] = None
    hectares: Optional[str] = None
    campaign: Optional[str] = None


class QuoteRequest(BaseModel):
    items: List[CartItem] = []
    customer: Optional[CustomerInfo] = None
    # 对话状态机保存的完整会话 (与 items 二选一)
    session: Optional[Dict[str, Any]] = None


def _quote_args(req: QuoteRequest):
    """请求体 -> (购物车或会话, 客户信息)。"""
    customer = None
    if req.customer is not None:
        customer = {k: v for k, v in req.customer.dict().items() if v}
    cart = req.session if req.session is not None else [item.dict() for item in req.items]
    return cart, customer


def _xlsx_response(output, filename: str) -> StreamingResponse:
    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def create_app(catalog: PriceCatalogService, quotes: QuoteService) -> FastAPI:
    app = FastAPI(title="agroquote")

    @app.exception_handler(FeedUnavailableError)
    async def feed_unavailable(_request, exc: FeedUnavailableError):
        logger.error("价格数据不可用: %s", exc)
        return JSONResponse(status_code=503, content={"error": exc.public_message})

    @app.exception_handler(QuoteAssemblyError)
    async def quote_failed(_request, exc: QuoteAssemblyError):
        logger.error("报价失败: %s", exc)
        return JSONResponse(status_code=500, content={"error": exc.public_message})

    @app.get("/prices")
    async def get_prices(force: bool = False):
        snapshot = await catalog.get_prices(force=force)
        return {
            "prices": [asdict(r) for r in snapshot.records],
            "rate": snapshot.rate,
            "version": snapshot.version,
            "fetched_at": snapshot.fetched_at,
        }

    @app.get("/prices.xlsx")
    async def download_prices(force: bool = False):
        snapshot = await catalog.get_prices(force=force)
        output, filename = generate_prices_bytes(snapshot.records, snapshot.rate, snapshot.version)
        return _xlsx_response(output, filename)

    # 注意：必须在 /prices/{sku} 之前注册
    @app.get("/prices/find")
    async def find_price(name: str, presentation: str = ""):
        record = await catalog.find_price(name, presentation)
        if record is None:
            raise HTTPException(status_code=404, detail="not_found")
        return asdict(record)

    @app.get("/prices/{sku}")
    async def get_by_sku(sku: str):
        record = await catalog.get_by_sku(sku)
        if record is None:
            raise HTTPException(status_code=404, detail="not_found")
        return asdict(record)

    @app.post("/quote")
    async def create_quote(req: QuoteRequest):
        quote = await quotes.assemble_quote(*_quote_args(req))
        data = quote.to_dict()
        data["meets_minimum_order"] = quote.meets_minimum_order
        return data

    @app.post("/quote.xlsx")
    async def download_quote(req: QuoteRequest):
        quote = await quotes.assemble_quote(*_quote_args(req))
        output, filename = generate_quote_bytes(quote)
        return _xlsx_response(output, filename)

    return app


def main():
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    catalog, quotes = build_services(settings)
    uvicorn.run(create_app(catalog, quotes), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()

"""
简单的命令行入口：读取价格表，列出价格或根据购物车生成报价单并导出 Excel。
用法示例：
    python cli_app.py prices --feed precios.xlsx --out precios_export.xlsx
    python cli_app.py quote --feed precios.xlsx --cart cart.json --out cotizacion.xlsx
"""
import argparse
import asyncio
import json
import sys

from agroquote.config import Settings
from agroquote.errors import AgroquoteError, QuoteAssemblyError
from agroquote.exporter import export_prices_to_excel, export_quote_to_excel, quick_check
from agroquote.logging_config import setup_logging
from agroquote.models import CATEGORY_ORDER
from agroquote.service import build_services


def read_cart(path: str):
    """读取购物车 JSON。文件缺失或格式错误时报报价失败，由 main 统一处理。"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise QuoteAssemblyError(f"购物车文件无法读取: {path}: {e}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="价格表 -> 报价单")
    parser.add_argument("--feed", help="价格表 Excel 路径 (缺省读取 AGROQUOTE_FEED_PATH)")
    parser.add_argument("--sheet", help="工作表名称")
    parser.add_argument("--rate-cell", dest="rate_cell", help="汇率单元格，例如 H2")
    parser.add_argument("--version-cell", dest="version_cell", help="版本号单元格，例如 H1")
    parser.add_argument("--reference", help="商品资料 JSON 路径")
    parser.add_argument("--log-level", dest="log_level", default=None)

    sub = parser.add_subparsers(dest="command", required=True)

    p_prices = sub.add_parser("prices", help="列出价格表")
    p_prices.add_argument("--out", help="导出 Excel 文件名")

    p_quote = sub.add_parser("quote", help="根据购物车生成报价单")
    p_quote.add_argument(
        "--cart", required=True, help="购物车 JSON：条目列表或完整会话对象"
    )
    p_quote.add_argument("--out", help="导出 Excel 文件名")
    return parser


def apply_args(settings: Settings, args) -> Settings:
    if args.feed:
        settings.feed_path = args.feed
    if args.sheet:
        settings.sheet_name = args.sheet
    if args.rate_cell:
        settings.rate_cell = args.rate_cell
    if args.version_cell:
        settings.version_cell = args.version_cell
    if args.reference:
        settings.reference_path = args.reference
    if args.log_level:
        settings.log_level = args.log_level
    return settings


async def run_prices(catalog, args):
    snapshot = await catalog.get_prices()
    print(f"版本: {snapshot.version}  汇率: {snapshot.rate} ({snapshot.rate_source})")
    for category in CATEGORY_ORDER:
        rows = [r for r in snapshot.records if r.category == category]
        if not rows:
            continue
        print(f"--- {category} ---")
        for r in rows:
            print(f"  {r.sku:<40} {r.unit:<5} USD {r.price_ref:>10.2f}  Bs {r.price_local:>10.2f}")
    print("核对报告:", quick_check(snapshot.records))

    if args.out:
        path = export_prices_to_excel(snapshot.records, snapshot.rate, args.out, snapshot.version)
        print(f"结果已导出至: {path}")


async def run_quote(quotes, args):
    cart = read_cart(args.cart)
    quote = await quotes.assemble_quote(cart)
    print(f"报价单 {quote.id}  客户: {quote.customer.name}  汇率: {quote.rate}")
    for line in quote.lines:
        flag = "" if line.price_found else "  (未找到价格)"
        print(f"  {line.display_name:<30} {line.package_label:<10} {line.quantity:>8g} {line.unit:<5}"
              f" x {line.unit_price_ref:>10.2f} = {line.line_subtotal_ref:>12.2f}{flag}")
    print(f"合计: {quote.total_ref:.2f} {quote.currency}")
    if not quote.meets_minimum_order:
        print(f"注意: 未达到最低起订金额 {quote.minimum_order_ref:.2f} {quote.currency}")

    if args.out:
        path = export_quote_to_excel(quote, args.out)
        print(f"结果已导出至: {path}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = apply_args(Settings.from_env(), args)
        setup_logging(settings.log_level)
        catalog, quotes = build_services(settings)
        if args.command == "prices":
            asyncio.run(run_prices(catalog, args))
        else:
            asyncio.run(run_quote(quotes, args))
    except AgroquoteError as e:
        print(f"错误: {getattr(e, 'public_message', None) or e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
导出模块。
将价格表或报价单导出为 Excel 文件 (支持本地文件和内存流)，并生成简要的核对报告。
"""
import os
import re
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Sequence, Tuple, Union

import pandas as pd
from openpyxl import load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from agroquote.models import PriceRecord, Quote

CATEGORY_LABELS = {
    "herbicide": "Herbicida",
    "insecticide": "Insecticida",
    "fungicide": "Fungicida",
}


def generate_prices_bytes(records: Sequence[PriceRecord], rate: float, version: str = "") -> Tuple[BytesIO, str]:
    """生成价格表 Excel 内存流和建议文件名。"""
    output = BytesIO()
    _write_prices(records, output, rate, version)
    output.seek(0)
    return output, _generate_filename("precios")


def export_prices_to_excel(
    records: Sequence[PriceRecord],
    rate: float,
    path: str = "",
    version: str = ""
) -> str:
    """将价格表导出为本地 Excel 文件，返回文件路径。"""
    path = _resolve_path(path, "precios")
    _write_prices(records, path, rate, version)
    return path


def export_quote_to_excel(quote: Quote, path: str = "") -> str:
    """将报价单导出为本地 Excel 文件，返回文件路径。"""
    path = _resolve_path(path, quote.id)
    _write_quote(quote, path)
    return path


def generate_quote_bytes(quote: Quote) -> Tuple[BytesIO, str]:
    output = BytesIO()
    _write_quote(quote, output)
    output.seek(0)
    return output, f"{quote.id}.xlsx"


def quick_check(records: Sequence[PriceRecord]) -> Dict[str, int]:
    """
    生成快速核对报告，统计关键指标。
    """
    return {
        "total": len(records),
        "missing_ref_price": sum(1 for r in records if not r.price_ref),
        "missing_local_price": sum(1 for r in records if not r.price_local),
        "missing_unit": sum(1 for r in records if not r.unit),
        "without_presentation": sum(1 for r in records if not r.presentation),
    }


# ==========================================
# 内部辅助函数
# ==========================================

def _generate_filename(base_name: str) -> str:
    safe = re.sub(r'[\\/:*?"<>|]', '_', base_name or "export")
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return f"{safe}_{timestamp}.xlsx"


def _resolve_path(path: str, base_name: str) -> str:
    if not path:
        return _generate_filename(base_name)
    if path.endswith("/") or path.endswith("\\"):
        return os.path.join(path, _generate_filename(base_name))
    return path


def _write_prices(records: Sequence[PriceRecord], target: Union[str, BytesIO], rate: float, version: str):
    rows = []
    for r in records:
        rows.append({
            "TIPO": CATEGORY_LABELS.get(r.category, r.category),
            "SKU": r.sku,
            "PRODUCTO": r.product,
            "PRESENTACION": r.presentation,
            "UNIDAD": r.unit,
            "PRECIO (USD)": r.price_ref,
            "PRECIO (BS)": r.price_local,
        })

    df = pd.DataFrame(rows, columns=["TIPO", "SKU", "PRODUCTO", "PRESENTACION",
                                     "UNIDAD", "PRECIO (USD)", "PRECIO (BS)"])
    df.to_excel(target, index=False, sheet_name="PRECIOS")
    if isinstance(target, BytesIO):
        target.seek(0)

    _format_excel(target, len(df.columns), {"I1": "TC", "J1": rate, "I2": "VERSION", "J2": version})


def _write_quote(quote: Quote, target: Union[str, BytesIO]):
    rows: List[Dict[str, Any]] = []
    for line in quote.lines:
        rows.append({
            "SKU": line.sku,
            "PRODUCTO": line.display_name,
            "INGREDIENTE ACTIVO": line.active_ingredient,
            "ENVASE": line.package_label,
            "UNIDAD": line.unit,
            "CANTIDAD": line.quantity,
            f"PRECIO ({quote.currency})": line.unit_price_ref,
            f"SUBTOTAL ({quote.currency})": line.line_subtotal_ref,
        })

    df = pd.DataFrame(rows, columns=[
        "SKU", "PRODUCTO", "INGREDIENTE ACTIVO", "ENVASE", "UNIDAD", "CANTIDAD",
        f"PRECIO ({quote.currency})", f"SUBTOTAL ({quote.currency})",
    ])
    df.to_excel(target, index=False, sheet_name="COTIZACION")
    if isinstance(target, BytesIO):
        target.seek(0)

    c = quote.customer
    _format_excel(target, len(df.columns), {
        "K1": "COTIZACION", "L1": quote.id,
        "K2": "FECHA", "L2": quote.timestamp,
        "K3": "CLIENTE", "L3": c.name,
        "K4": "ZONA", "L4": f"{c.department} / {c.zone}",
        "K5": "CULTIVO", "L5": c.crop,
        "K6": "TC", "L6": quote.rate,
        "K7": "TOTAL", "L7": quote.total_ref,
        "K8": "PEDIDO MINIMO", "L8": quote.minimum_order_ref,
    })


def _format_excel(target: Union[str, BytesIO], data_cols: int, meta_cells: Dict[str, Any]):
    """对 Excel 文件进行美化格式化，并写入元数据单元格。"""
    wb = load_workbook(target)
    ws = wb.active

    for addr, value in meta_cells.items():
        ws[addr] = value
        if addr.startswith(("I", "K")):
            ws[addr].font = Font(bold=True)

    # 样式定义
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF", size=11)
    border = Border(
        left=Side(style='thin'), right=Side(style='thin'),
        top=Side(style='thin'), bottom=Side(style='thin')
    )
    center_align = Alignment(horizontal="center", vertical="center", wrap_text=True)
    left_align = Alignment(horizontal="left", vertical="center", wrap_text=True)

    # 格式化表头
    for cell in ws[1][:data_cols]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = center_align
        cell.border = border

    # 格式化数据行
    for row in ws.iter_rows(min_row=2, max_row=ws.max_row, max_col=data_cols):
        for cell in row:
            cell.border = border
            cell.alignment = left_align

    # 自动调整列宽
    for column in ws.columns:
        max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
        ws.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)

    ws.freeze_panes = "A2"
    if isinstance(target, BytesIO):
        target.seek(0)
        target.truncate()
    wb.save(target)

"""
表格文件生成（CSV / XLSX）

输入为已取出的记录列表，每条记录生成一行数据
"""

import csv
import io
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter

CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def cell_value(value: Any) -> Any:
    """转换为表格可写入的值"""
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def collect_headers(records: Sequence[Dict[str, Any]]) -> List[str]:
    """按首次出现顺序收集字段名"""
    headers: List[str] = []
    for record in records:
        for key in record.keys():
            if key not in headers:
                headers.append(key)
    return headers


def records_to_csv(records: Sequence[Dict[str, Any]], headers: Sequence[str] = None) -> str:
    """单表 CSV：表头一行，每条记录一行"""
    headers = list(headers or collect_headers(records))
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    for record in records:
        writer.writerow([cell_value(record.get(h)) for h in headers])
    return buffer.getvalue()


def sheets_to_xlsx(sheets: Dict[str, Sequence[Dict[str, Any]]],
                   headers: Optional[Dict[str, Sequence[str]]] = None) -> bytes:
    """
    多表 XLSX：每个表一个工作表，首行为表头

    Args:
        sheets: {工作表名: 记录列表}
        headers: {工作表名: 表头}，未提供时从记录中收集
    """
    headers = headers or {}
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, records in sheets.items():
        # Excel 工作表名最长 31 个字符
        sheet = workbook.create_sheet(title=name[:31])
        columns = list(headers.get(name) or collect_headers(records))
        sheet.append(columns)
        for record in records:
            sheet.append([cell_value(record.get(h)) for h in columns])
        for index, header in enumerate(columns, start=1):
            sheet.column_dimensions[get_column_letter(index)].width = max(12, len(header) + 2)
    if not workbook.sheetnames:
        workbook.create_sheet(title="empty")

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def xlsx_to_sheets(content: bytes) -> Dict[str, List[Dict[str, Any]]]:
    """读取 XLSX：每个工作表首行为表头，其余行转为记录"""
    workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    sheets: Dict[str, List[Dict[str, Any]]] = {}
    try:
        for sheet in workbook.worksheets:
            rows = sheet.iter_rows(values_only=True)
            headers = next(rows, None)
            if not headers:
                sheets[sheet.title] = []
                continue
            records = []
            for row in rows:
                if row is None or all(v is None for v in row):
                    continue
                records.append({
                    str(h): ("" if v is None else v)
                    for h, v in zip(headers, row) if h is not None
                })
            sheets[sheet.title] = records
    finally:
        workbook.close()
    return sheets

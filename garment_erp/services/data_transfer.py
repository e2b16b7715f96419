"""
数据库导入导出服务

导出格式：
- json: {"metadata": {...}, "data": {表名: [记录, ...]}}
- csv:  元数据块，之后每个表一段（"# Table: 表名"、表头、数据行）
- xlsx: 每个表一个工作表

导入模式：
- merge:   按自然键（或主键）更新已有记录，其余新增
- replace: 先清空所选表（用户表除外）再写入
"""

import csv
import io
import json
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import (
    Boolean, Date, DateTime, Integer, JSON, Numeric, String, Table, Text,
    and_, or_, delete, func, insert, select, update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from garment_erp.db.base import Base
from garment_erp.services.file_export import collect_headers, cell_value, sheets_to_xlsx, xlsx_to_sheets

# 确保所有模型已注册到元数据
import garment_erp.models  # noqa: F401

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"
IMPORT_MODES = ("merge", "replace")
# 清空模式下不会被清空的表
PROTECTED_TABLES = {"users"}


@dataclass(frozen=True)
class TableSpec:
    """可导入导出的表"""
    name: str
    natural_key: Tuple[str, ...] = ()
    label: str = ""

    @property
    def table(self) -> Table:
        return Base.metadata.tables[self.name]


# 按依赖顺序排列：被引用的表在前
TABLE_SPECS: "OrderedDict[str, TableSpec]" = OrderedDict(
    (spec.name, spec) for spec in [
        TableSpec("users", ("username",), "用户"),
        TableSpec("roles", ("code",), "角色"),
        TableSpec("user_roles", ("user_id", "role_id"), "用户角色"),
        TableSpec("factories", ("code",), "工厂"),
        TableSpec("lines", ("code",), "生产线"),
        TableSpec("styles", ("style_number",), "款式"),
        TableSpec("style_assignments", (), "上线安排"),
        TableSpec("expense_categories", ("name",), "费用类别"),
        TableSpec("targets", (), "生产目标"),
        TableSpec("production_entries", (), "生产记录"),
        TableSpec("daily_production_reports", ("date", "style_id", "line_no"), "生产日报"),
        TableSpec("expenses", (), "日常费用"),
        TableSpec("monthly_expenses", ("month", "year", "category"), "月度费用"),
        TableSpec("cashbook_entries", (), "现金账"),
        TableSpec("salary_rates", (), "工资标准"),
        TableSpec("daily_salaries", (), "日工资"),
        TableSpec("shipments", (), "发货"),
        TableSpec("audit_logs", (), "操作日志"),
    ]
)

# 业务数据与用户数据的划分（备份时分别保存）
USER_TABLES = ["users", "roles", "user_roles"]
PRODUCTION_TABLES = [name for name in TABLE_SPECS if name not in USER_TABLES]


def resolve_tables(tables: Optional[Sequence[str]]) -> List[str]:
    """
    校验表名并按依赖顺序返回；为空时返回全部表

    Raises:
        ValueError: 存在未知表名
    """
    if not tables:
        return list(TABLE_SPECS.keys())
    unknown = [t for t in tables if t not in TABLE_SPECS]
    if unknown:
        raise ValueError(f"未知的数据表: {', '.join(unknown)}")
    wanted = set(tables)
    return [name for name in TABLE_SPECS if name in wanted]


def parse_tables_param(value: Optional[str]) -> List[str]:
    """解析逗号分隔的表名参数"""
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]


def serialize_value(value: Any) -> Any:
    """转换为 JSON 可序列化的值"""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def coerce_value(column, value: Any) -> Any:
    """
    将导入值转换为列类型

    CSV 中的所有值都是字符串，JSON 中的日期也是字符串
    """
    if value is None:
        return None
    column_type = column.type
    if isinstance(value, str) and value == "" and not isinstance(column_type, (String, Text)):
        return None

    if isinstance(column_type, JSON):
        if isinstance(value, str):
            return json.loads(value)
        return value
    if isinstance(column_type, Boolean):
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes", "y")
        return bool(value)
    if isinstance(column_type, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    if isinstance(column_type, Date):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return date.fromisoformat(str(value)[:10])
    if isinstance(column_type, Numeric):
        return Decimal(str(value))
    if isinstance(column_type, Integer):
        return int(Decimal(str(value)))
    if isinstance(column_type, (String, Text)):
        return str(value)
    return value


async def fetch_table(db: AsyncSession, name: str, since: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    读取整张表（按主键排序）

    Args:
        since: 只取该时间之后新增或修改的记录（增量备份用）
    """
    table = TABLE_SPECS[name].table
    query = select(table).order_by(*table.primary_key.columns)
    if since is not None:
        changed = [table.c[col] >= since for col in ("updated_at", "created_at") if col in table.c]
        if changed:
            query = query.where(or_(*changed))
    rows = (await db.execute(query)).mappings().all()
    return [{key: serialize_value(value) for key, value in row.items()} for row in rows]


async def export_data(db: AsyncSession, tables: Optional[Sequence[str]] = None,
                      fmt: str = "json", exported_by: str = "admin",
                      since: Optional[datetime] = None) -> Dict[str, Any]:
    """导出所选表为统一的数据文档"""
    names = resolve_tables(tables)
    data = OrderedDict()
    for name in names:
        data[name] = await fetch_table(db, name, since)
    document = {
        "metadata": {
            "export_date": datetime.utcnow().isoformat(),
            "exported_by": exported_by,
            "format": fmt,
            "tables": names,
            "record_counts": {name: len(rows) for name, rows in data.items()},
            "version": EXPORT_VERSION,
            "since": since.isoformat() if since else None,
        },
        "data": data,
    }
    logger.info(f"📤 导出数据: {len(names)} 张表, {sum(len(r) for r in data.values())} 条记录")
    return document


def _table_headers(name: str, records: Sequence[Dict[str, Any]]) -> List[str]:
    if name in TABLE_SPECS:
        return [c.name for c in TABLE_SPECS[name].table.columns]
    return collect_headers(records)


def render_csv(document: Dict[str, Any]) -> str:
    """
    数据文档转 CSV

    每个表输出 "# Table: 表名"、表头和每条记录一行，表之间空一行
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    metadata = document["metadata"]
    writer.writerow(["Table", "Field", "Value"])
    for field in ("export_date", "exported_by", "format", "version"):
        writer.writerow(["metadata", field, metadata.get(field, "")])
    writer.writerow(["metadata", "tables", ",".join(metadata.get("tables", []))])
    buffer.write("\n")

    for name, records in document["data"].items():
        headers = _table_headers(name, records)
        buffer.write(f"# Table: {name}\n")
        writer.writerow(headers)
        for record in records:
            writer.writerow([cell_value(record.get(h)) for h in headers])
        buffer.write("\n")
    return buffer.getvalue()


def render_xlsx(document: Dict[str, Any]) -> bytes:
    """数据文档转 XLSX（每个表一个工作表）"""
    data = document["data"]
    headers = {name: _table_headers(name, records) for name, records in data.items()}
    return sheets_to_xlsx(data, headers)


def parse_csv(content: str) -> Dict[str, Any]:
    """解析 render_csv 生成的 CSV 文档"""
    metadata: Dict[str, Any] = {"format": "csv"}
    data: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    current: Optional[str] = None
    headers: Optional[List[str]] = None

    for values in csv.reader(io.StringIO(content)):
        if not values or not any(v.strip() for v in values):
            current, headers = None, None
            continue
        if len(values) == 1 and values[0].startswith("# Table:"):
            current = values[0][len("# Table:"):].strip()
            data[current] = []
            headers = None
            continue
        if current is None:
            if len(values) >= 3 and values[0] == "metadata":
                metadata[values[1]] = values[2]
            continue
        if headers is None:
            headers = values
            continue
        data[current].append(dict(zip(headers, values)))

    if isinstance(metadata.get("tables"), str):
        metadata["tables"] = [t for t in metadata["tables"].split(",") if t]
    return {"metadata": metadata, "data": data}


def parse_xlsx(content: bytes) -> Dict[str, Any]:
    sheets = xlsx_to_sheets(content)
    return {"metadata": {"format": "xlsx", "tables": list(sheets.keys())}, "data": sheets}


def parse_import_file(filename: str, content: bytes) -> Dict[str, Any]:
    """
    按扩展名解析导入文件并校验结构

    Raises:
        ValueError: 格式不支持或缺少 metadata / data
    """
    extension = (filename or "").rsplit(".", 1)[-1].lower()
    if extension == "json":
        try:
            document = json.loads(content.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValueError(f"JSON 文件解析失败: {e}")
    elif extension == "csv":
        document = parse_csv(content.decode("utf-8-sig"))
    elif extension == "xlsx":
        document = parse_xlsx(content)
    else:
        raise ValueError("不支持的文件格式，请使用 JSON、CSV 或 XLSX 文件")

    if not isinstance(document, dict) or not isinstance(document.get("metadata"), dict):
        raise ValueError("导入文件缺少 metadata")
    if not isinstance(document.get("data"), dict):
        raise ValueError("导入文件缺少 data")
    return document


def _prepare_record(table: Table, record: Dict[str, Any], id_maps: Dict[str, Dict[Any, Any]]) -> Dict[str, Any]:
    """过滤未知字段、转换类型，并按已导入表的主键映射改写外键"""
    values = {}
    for column in table.columns:
        if column.name not in record:
            continue
        value = coerce_value(column, record[column.name])
        for fk in column.foreign_keys:
            mapping = id_maps.get(fk.column.table.name)
            if mapping and value in mapping:
                value = mapping[value]
        values[column.name] = value
    return values


async def _find_existing(db: AsyncSession, table: Table, spec: TableSpec, values: Dict[str, Any]):
    """按自然键查找已有记录，无自然键时按主键"""
    if spec.natural_key and all(values.get(k) is not None for k in spec.natural_key):
        conditions = [table.c[k] == values[k] for k in spec.natural_key]
        row = (await db.execute(select(table).where(and_(*conditions)))).mappings().first()
        return row, "natural"
    pk_columns = list(table.primary_key.columns)
    if all(values.get(c.name) is not None for c in pk_columns):
        conditions = [c == values[c.name] for c in pk_columns]
        row = (await db.execute(select(table).where(and_(*conditions)))).mappings().first()
        return row, "primary"
    return None, None


async def _pk_taken(db: AsyncSession, table: Table, values: Dict[str, Any]) -> bool:
    pk_columns = list(table.primary_key.columns)
    if not all(values.get(c.name) is not None for c in pk_columns):
        return False
    conditions = [c == values[c.name] for c in pk_columns]
    count = (await db.execute(select(func.count()).select_from(table).where(and_(*conditions)))).scalar_one()
    return count > 0


async def _import_record(
    db: AsyncSession, spec: TableSpec, values: Dict[str, Any], mode: str, id_map: Dict[Any, Any]
) -> None:
    table = spec.table
    pk_columns = list(table.primary_key.columns)
    single_pk = pk_columns[0].name if len(pk_columns) == 1 else None
    source_id = values.get(single_pk) if single_pk else None

    if mode == "merge":
        existing, matched_by = await _find_existing(db, table, spec, values)
        if existing is not None:
            conditions = [c == existing[c.name] for c in pk_columns]
            changes = {k: v for k, v in values.items() if k not in {c.name for c in pk_columns}}
            if changes:
                await db.execute(update(table).where(and_(*conditions)).values(**changes))
            if single_pk and source_id is not None:
                id_map[source_id] = existing[single_pk]
            return
        if single_pk and matched_by == "natural" and await _pk_taken(db, table, values):
            # 主键已被其他记录占用，由数据库分配新主键
            values = {k: v for k, v in values.items() if k != single_pk}

    result = await db.execute(insert(table).values(**values))
    if single_pk and source_id is not None:
        new_id = values.get(single_pk)
        if new_id is None and result.inserted_primary_key:
            new_id = result.inserted_primary_key[0]
        id_map[source_id] = new_id


async def clear_tables(db: AsyncSession, names: Sequence[str]) -> Dict[str, int]:
    """按依赖逆序清空表（用户表除外）"""
    cleared = {}
    for name in reversed(resolve_tables(names)):
        if name in PROTECTED_TABLES:
            continue
        result = await db.execute(delete(TABLE_SPECS[name].table))
        cleared[name] = result.rowcount or 0
    return cleared


async def import_data(
    db: AsyncSession,
    document: Dict[str, Any],
    mode: str = "merge",
    tables: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    导入数据文档

    单条记录失败不影响其他记录，错误收集在结果中

    Returns:
        {"imported": 成功数, "errors": 失败数, "details": {表名: {...}}}
    """
    if mode not in IMPORT_MODES:
        raise ValueError(f"不支持的导入模式: {mode}")
    data = document.get("data") or {}
    available = [name for name in data.keys() if name in TABLE_SPECS]
    names = resolve_tables(tables) if tables else resolve_tables(available)
    names = [name for name in names if name in data]
    skipped = [name for name in data.keys() if name not in TABLE_SPECS]

    results: Dict[str, Any] = {"imported": 0, "errors": 0, "details": {}, "skipped_tables": skipped}

    if mode == "replace":
        cleared = await clear_tables(db, names)
        await db.flush()
        results["cleared"] = cleared

    id_maps: Dict[str, Dict[Any, Any]] = {}
    for name in names:
        spec = TABLE_SPECS[name]
        records = data.get(name) or []
        detail = {"imported": 0, "errors": 0, "error_messages": []}
        id_map = id_maps.setdefault(name, {})
        for index, record in enumerate(records):
            try:
                values = _prepare_record(spec.table, record, id_maps)
                # 用户表不清空，清空模式下也按合并处理
                table_mode = "merge" if name in PROTECTED_TABLES else mode
                async with db.begin_nested():
                    await _import_record(db, spec, values, table_mode, id_map)
                detail["imported"] += 1
            except (SQLAlchemyError, ValueError, TypeError, ArithmeticError) as e:
                detail["errors"] += 1
                if len(detail["error_messages"]) < 20:
                    detail["error_messages"].append(f"第 {index + 1} 条: {str(e).splitlines()[0]}")
        results["details"][name] = detail
        results["imported"] += detail["imported"]
        results["errors"] += detail["errors"]

    await db.commit()
    logger.info(f"📥 导入完成({mode}): 成功 {results['imported']} 条, 失败 {results['errors']} 条")
    return results


async def table_counts(db: AsyncSession) -> Dict[str, int]:
    """各表记录数"""
    counts = {}
    for name, spec in TABLE_SPECS.items():
        counts[name] = (await db.execute(select(func.count()).select_from(spec.table))).scalar_one()
    return counts

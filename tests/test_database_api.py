import io
import json

from openpyxl import load_workbook

from garment_erp.services.data_transfer import TABLE_SPECS, parse_csv, resolve_tables
from garment_erp.services.file_export import XLSX_MEDIA_TYPE
from conftest import API

import pytest


def test_resolve_tables_keeps_dependency_order():
    assert resolve_tables(["shipments", "styles", "lines"]) == ["lines", "styles", "shipments"]
    with pytest.raises(ValueError):
        resolve_tables(["nope"])


def test_parse_csv_sections():
    content = (
        "Table,Field,Value\n"
        "metadata,version,1.0\n"
        "metadata,tables,\"lines,styles\"\n"
        "\n"
        "# Table: lines\n"
        "id,name,code\n"
        "1,Line 1,L-01\n"
        "2,Line 2,L-02\n"
        "\n"
        "# Table: styles\n"
        "id,style_number\n"
    )
    document = parse_csv(content)
    assert document["metadata"]["tables"] == ["lines", "styles"]
    assert document["data"]["lines"][1] == {"id": "2", "name": "Line 2", "code": "L-02"}
    assert document["data"]["styles"] == []


async def test_export_json_contains_every_table(client, line):
    response = await client.get(f"{API}/database/export", params={"format": "json"})
    assert response.status_code == 200
    assert "database_export_" in response.headers["content-disposition"]
    document = response.json()
    assert list(document["data"].keys()) == list(TABLE_SPECS.keys())
    assert document["metadata"]["record_counts"]["lines"] == 1
    assert document["data"]["lines"][0]["code"] == "L-01"


async def test_export_selected_tables(client, line):
    response = await client.get(f"{API}/database/export", params={"format": "json", "tables": "lines,styles"})
    assert list(response.json()["data"].keys()) == ["lines", "styles"]
    bad = await client.get(f"{API}/database/export", params={"tables": "ghosts"})
    assert bad.status_code == 400


async def test_merge_import_restores_deleted_rows(client, line, style):
    exported = (await client.get(f"{API}/database/export", params={"format": "json"})).content
    await client.delete(f"{API}/lines/{line['id']}")
    await client.put(f"{API}/styles/{style['id']}", json={"buyer": "Zara"})

    response = await client.post(
        f"{API}/database/import",
        files={"file": ("backup.json", exported, "application/json")},
        data={"mode": "merge", "tables": "lines,styles"},
    )
    assert response.status_code == 200, response.text
    result = response.json()
    assert result["errors"] == 0
    assert result["imported"] == 2

    lines = (await client.get(f"{API}/lines/")).json()["data"]
    assert [l["code"] for l in lines] == ["L-01"]
    assert (await client.get(f"{API}/styles/{style['id']}")).json()["buyer"] == "H&M"


async def test_replace_import_from_csv(client, line):
    exported = (await client.get(f"{API}/database/export", params={"format": "csv"})).content
    await client.post(f"{API}/lines/", json={"name": "Line 2", "code": "L-02"})

    response = await client.post(
        f"{API}/database/import",
        files={"file": ("backup.csv", exported, "text/csv")},
        data={"mode": "replace", "tables": "lines"},
    )
    assert response.status_code == 200, response.text
    assert response.json()["cleared"] == {"lines": 2}
    lines = (await client.get(f"{API}/lines/")).json()["data"]
    assert [l["code"] for l in lines] == ["L-01"]


async def test_replace_keeps_users(client):
    exported = json.dumps({"metadata": {"version": "1.0"}, "data": {"users": [], "lines": []}})
    response = await client.post(
        f"{API}/database/import",
        files={"file": ("empty.json", exported.encode("utf-8"), "application/json")},
        data={"mode": "replace"},
    )
    assert response.status_code == 200
    users = (await client.get(f"{API}/admin/users/")).json()
    assert [u["id"] for u in users] == [1]


async def test_import_rejects_bad_files(client):
    unsupported = await client.post(
        f"{API}/database/import", files={"file": ("data.txt", b"hello", "text/plain")}, data={"mode": "merge"},
    )
    assert unsupported.status_code == 400
    no_metadata = await client.post(
        f"{API}/database/import", files={"file": ("data.json", b'{"data": {}}', "application/json")},
        data={"mode": "merge"},
    )
    assert no_metadata.status_code == 400
    bad_mode = await client.post(
        f"{API}/database/import", files={"file": ("data.json", b"{}", "application/json")},
        data={"mode": "upsert"},
    )
    assert bad_mode.status_code == 400


async def test_status_counts(client, line):
    data = (await client.get(f"{API}/database/status")).json()
    counts = {t["name"]: t["count"] for t in data["tables"]}
    assert counts["lines"] == 1
    assert counts["users"] == 1
    assert data["total_records"] == sum(counts.values())


async def test_xlsx_export_and_merge_import(client, line, style):
    response = await client.get(f"{API}/database/export", params={"format": "xlsx", "tables": "lines,styles"})
    assert response.status_code == 200
    assert response.headers["content-disposition"].endswith('.xlsx"')

    workbook = load_workbook(io.BytesIO(response.content), read_only=True)
    assert workbook.sheetnames == ["lines", "styles"]
    rows = list(workbook["lines"].iter_rows(values_only=True))
    assert "code" in rows[0]
    assert len(rows) == 2
    workbook.close()

    await client.delete(f"{API}/styles/{style['id']}")
    result = await client.post(
        f"{API}/database/import",
        files={"file": ("export.xlsx", response.content, XLSX_MEDIA_TYPE)},
        data={"mode": "merge"},
    )
    assert result.status_code == 200, result.text
    assert result.json()["errors"] == 0
    restored = (await client.get(f"{API}/styles/{style['id']}")).json()
    assert restored["style_number"] == "ST-1001"
    assert restored["order_qty"] == 1000

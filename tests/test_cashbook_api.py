import io

from openpyxl import load_workbook

from conftest import API


async def _post(client, day, type, amount, category="Misc"):
    response = await client.post(f"{API}/cashbook/", json={
        "date": day, "type": type, "amount": amount, "category": category,
    })
    assert response.status_code == 200, response.text
    return response.json()


async def test_list_returns_running_balance_newest_first(client):
    await _post(client, "2024-05-01", "CREDIT", 1000)
    await _post(client, "2024-05-02", "DEBIT", 300)
    await _post(client, "2024-05-03", "DEBIT", 200)

    data = (await client.get(f"{API}/cashbook/")).json()
    assert [e["date"] for e in data["data"]] == ["2024-05-03", "2024-05-02", "2024-05-01"]
    assert [e["running_balance"] for e in data["data"]] == [500.0, 700.0, 1000.0]
    assert data["total_credit"] == 1000
    assert data["total_debit"] == 500
    assert data["closing_balance"] == 500
    assert data["data"][0]["running_balance"] == data["closing_balance"]


async def test_running_balance_survives_pagination(client):
    for day in range(1, 6):
        await _post(client, f"2024-05-0{day}", "CREDIT", 100)

    page = (await client.get(f"{API}/cashbook/", params={"page": 2, "limit": 2})).json()
    assert page["total"] == 5
    assert [e["running_balance"] for e in page["data"]] == [300.0, 200.0]


async def test_amount_must_be_positive(client):
    response = await client.post(f"{API}/cashbook/", json={
        "date": "2024-05-01", "type": "DEBIT", "amount": 0, "category": "Misc",
    })
    assert response.status_code == 422


async def test_invalid_type_filter(client):
    response = await client.get(f"{API}/cashbook/", params={"type": "BOTH"})
    assert response.status_code == 400


async def test_quick_entries_use_default_categories(client):
    received = await client.post(f"{API}/cashbook/cash-received", json={"date": "2024-05-01", "amount": 5000})
    spent = await client.post(f"{API}/cashbook/daily-expense", json={"date": "2024-05-01", "amount": 120})
    assert received.json()["category"] == "Cash Received"
    assert received.json()["type"] == "CREDIT"
    assert spent.json()["category"] == "Daily Expense"
    assert spent.json()["type"] == "DEBIT"

    expenses = (await client.get(f"{API}/cashbook/daily-expense")).json()
    assert expenses["total"] == 1
    assert expenses["total_amount"] == 120


async def test_update_and_delete_entry(client):
    entry = await _post(client, "2024-05-01", "CREDIT", 100)
    response = await client.put(f"{API}/cashbook/{entry['id']}", json={"amount": 250})
    assert response.status_code == 200
    assert response.json()["amount"] == 250

    assert (await client.delete(f"{API}/cashbook/{entry['id']}")).json() == {"message": "删除成功"}
    assert (await client.get(f"{API}/cashbook/{entry['id']}")).status_code == 404


async def test_summary_rejects_unknown_period(client):
    response = await client.get(f"{API}/cashbook/summary", params={"period": "forever"})
    assert response.status_code == 400


async def test_monthly_report(client):
    await client.post(f"{API}/cashbook/cash-received", json={"date": "2024-05-01", "amount": 1000})
    await client.post(f"{API}/cashbook/daily-expense", json={"date": "2024-05-02", "amount": 150})
    await client.post(f"{API}/cashbook/daily-expense", json={"date": "2024-06-01", "amount": 999})

    report = (await client.get(f"{API}/cashbook/monthly-report", params={"month": "2024-05"})).json()
    assert [d["date"] for d in report["days"]] == ["2024-05-01", "2024-05-02"]
    assert report["summary"]["total_received"] == 1000
    assert report["summary"]["total_expenses"] == 150
    assert report["summary"]["net"] == 850
    assert report["summary"]["transaction_count"] == 2


async def test_export_csv_has_one_row_per_entry(client):
    await _post(client, "2024-05-01", "CREDIT", 100)
    await _post(client, "2024-05-02", "DEBIT", 40)

    response = await client.get(f"{API}/cashbook/export", params={"format": "csv"})
    assert response.status_code == 200
    assert "attachment" in response.headers["content-disposition"]
    rows = response.content.decode("utf-8-sig").strip().splitlines()
    assert rows[0].startswith("date,type,category")
    assert len(rows) == 3


async def test_export_rejects_unknown_format(client):
    response = await client.get(f"{API}/cashbook/export", params={"format": "pdf"})
    assert response.status_code == 400


async def test_entry_with_missing_line(client):
    response = await client.post(f"{API}/cashbook/", json={
        "date": "2024-05-01", "type": "DEBIT", "amount": 10, "category": "Misc", "line_id": 999,
    })
    assert response.status_code == 404


async def test_export_xlsx_has_one_row_per_entry(client):
    await _post(client, "2024-05-01", "CREDIT", 100)
    await _post(client, "2024-05-02", "DEBIT", 40)

    response = await client.get(f"{API}/cashbook/export", params={"format": "xlsx"})
    assert response.status_code == 200
    workbook = load_workbook(io.BytesIO(response.content), read_only=True)
    rows = list(workbook["cashbook"].iter_rows(values_only=True))
    workbook.close()
    assert rows[0][:3] == ("date", "type", "category")
    assert len(rows) == 3

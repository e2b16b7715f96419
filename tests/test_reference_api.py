from conftest import API


async def test_factory_with_lines_cannot_be_deleted(client):
    factory = (await client.post(f"{API}/factories/", json={"name": "Main", "code": "F1"})).json()
    await client.post(f"{API}/lines/", json={"name": "Line 1", "code": "L-01", "factory_id": factory["id"]})

    detail = (await client.get(f"{API}/factories/{factory['id']}")).json()
    assert detail["line_count"] == 1
    assert (await client.delete(f"{API}/factories/{factory['id']}")).status_code == 400


async def test_empty_factory_can_be_deleted(client):
    factory = (await client.post(f"{API}/factories/", json={"name": "Annex", "code": "F2"})).json()
    assert (await client.delete(f"{API}/factories/{factory['id']}")).status_code == 200
    assert (await client.get(f"{API}/factories/{factory['id']}")).status_code == 404


async def test_duplicate_codes_conflict(client, line):
    response = await client.post(f"{API}/lines/", json={"name": "Other", "code": "L-01"})
    assert response.status_code == 409
    await client.post(f"{API}/factories/", json={"name": "Main", "code": "F1"})
    assert (await client.post(f"{API}/factories/", json={"name": "Dup", "code": "F1"})).status_code == 409


async def test_line_with_missing_factory(client):
    response = await client.post(f"{API}/lines/", json={"name": "Line 9", "code": "L-09", "factory_id": 42})
    assert response.status_code == 404


async def test_line_in_use_cannot_be_deleted(client, line):
    await client.post(f"{API}/cashbook/daily-expense", json={
        "date": "2024-05-01", "amount": 10, "line_id": line["id"],
    })
    assert (await client.delete(f"{API}/lines/{line['id']}")).status_code == 400


async def test_unused_line_can_be_deleted(client, line):
    assert (await client.delete(f"{API}/lines/{line['id']}")).json() == {"message": "删除成功"}


async def test_default_expense_categories_are_seeded(client):
    names = [c["name"] for c in (await client.get(f"{API}/expense-categories/")).json()]
    assert "Daily Expense" in names
    assert "Utilities" in names


async def test_category_in_use_cannot_be_deleted(client):
    category = (await client.post(f"{API}/expense-categories/", json={"name": "Courier"})).json()
    expense = await client.post(f"{API}/expenses/", json={
        "date": "2024-05-01", "category_id": category["id"], "amount": 75,
    })
    assert expense.status_code == 200, expense.text
    assert expense.json()["category_name"] == "Courier"
    assert (await client.delete(f"{API}/expense-categories/{category['id']}")).status_code == 400


async def test_expense_list_totals_by_category(client):
    categories = {c["name"]: c["id"] for c in (await client.get(f"{API}/expense-categories/")).json()}
    for name, amount in (("Utilities", 100), ("Utilities", 50), ("Transport", 30)):
        await client.post(f"{API}/expenses/", json={
            "date": "2024-05-01", "category_id": categories[name], "amount": amount,
        })
    data = (await client.get(f"{API}/expenses/")).json()
    assert data["total"] == 3
    assert data["total_amount"] == 180
    assert data["by_category"][0]["amount"] == 150


async def test_monthly_expense_is_unique_per_month_and_category(client):
    payload = {"month": 5, "year": 2024, "category": "Rent", "amount": 3000}
    assert (await client.post(f"{API}/expenses/monthly", json=payload)).status_code == 200
    assert (await client.post(f"{API}/expenses/monthly", json=payload)).status_code == 409


async def test_changes_are_audit_logged(client, line):
    await client.put(f"{API}/lines/{line['id']}", json={"name": "Line One"})
    data = (await client.get(f"{API}/admin/logs/", params={"resource_type": "line"})).json()
    actions = [log["action"] for log in data["data"]]
    assert "create" in actions
    assert "update" in actions
    update = next(log for log in data["data"] if log["action"] == "update")
    assert update["old_value"]["name"] == "Line 1"
    assert update["new_value"]["name"] == "Line One"
    assert update["user_id"] == 1


async def test_audit_log_rejects_bad_date(client):
    response = await client.get(f"{API}/admin/logs/", params={"start_date": "05/01/2024"})
    assert response.status_code == 400

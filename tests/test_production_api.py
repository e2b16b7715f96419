from conftest import API


async def _input(client, line, style, qty, day="2024-05-02", hour=8):
    return await client.post(f"{API}/cutting/daily-input", json={
        "date": day, "line_id": line["id"], "style_id": style["id"], "input_qty": qty, "hour_index": hour,
    })


async def _output(client, line, style, qty, defects=0, day="2024-05-02", hour=9):
    return await client.post(f"{API}/cutting/daily-output", json={
        "date": day, "line_id": line["id"], "style_id": style["id"],
        "output_qty": qty, "defect_qty": defects, "hour_index": hour,
    })


async def test_cutting_output_cannot_exceed_input(client, line, style):
    assert (await _input(client, line, style, 100)).status_code == 200
    assert (await _output(client, line, style, 90, 10)).status_code == 200

    response = await _output(client, line, style, 1)
    assert response.status_code == 400


async def test_cutting_output_accumulates_in_same_hour(client, line, style):
    await _input(client, line, style, 100)
    first = (await _output(client, line, style, 30)).json()
    second = (await _output(client, line, style, 20, 5)).json()
    assert first["id"] == second["id"]
    assert second["output_qty"] == 50
    assert second["defect_qty"] == 5


async def test_deleting_input_that_output_depends_on_is_rejected(client, line, style):
    entry = (await _input(client, line, style, 100)).json()
    await _output(client, line, style, 60)
    response = await client.delete(f"{API}/production/entries/{entry['id']}")
    assert response.status_code == 400


async def test_update_cutting_entry_checks_balance(client, line, style):
    entry = (await _input(client, line, style, 100)).json()
    await _output(client, line, style, 80)
    response = await client.put(f"{API}/production/entries/{entry['id']}", json={"input_qty": 70})
    assert response.status_code == 400
    response = await client.put(f"{API}/production/entries/{entry['id']}", json={"input_qty": 80})
    assert response.status_code == 200


async def test_cutting_summary_and_monthly_report(client, line, style):
    await _input(client, line, style, 100, day="2024-05-01")
    await _output(client, line, style, 50, day="2024-05-01")
    await _input(client, line, style, 200)
    await _output(client, line, style, 150, 4)

    summary = (await client.get(f"{API}/cutting/summary", params={"date": "2024-05-02"})).json()
    assert summary["total_input"] == 200
    assert summary["total_output"] == 150
    assert summary["wip"] == 50
    assert summary["efficiency"] == 75
    assert summary["trend"]["previous_output"] == 50

    report = (await client.get(f"{API}/cutting/monthly-report", params={"month": "2024-05"})).json()
    assert report["summary"]["working_days"] == 2
    assert report["summary"]["total_input"] == 300


async def test_non_cutting_entries_are_not_balance_checked(client, line, style):
    response = await client.post(f"{API}/production/entries", json={
        "date": "2024-05-02", "line_id": line["id"], "style_id": style["id"],
        "stage": "SEWING", "output_qty": 500,
    })
    assert response.status_code == 200
    assert response.json()["line_code"] == "L-01"
    assert response.json()["style_number"] == "ST-1001"


async def test_target_daily_report(client, line, style):
    response = await client.post(f"{API}/target/", json={
        "date": "2024-05-02", "line_no": "L-01", "style_no": "ST-1001",
        "line_target": 100, "in_time": "08:00", "out_time": "18:00",
    })
    assert response.status_code == 200, response.text
    for hour, qty in ((8, 90), (9, 110)):
        await client.post(f"{API}/production/entries", json={
            "date": "2024-05-02", "hour_index": hour, "line_id": line["id"], "style_id": style["id"],
            "stage": "SEWING", "output_qty": qty,
        })

    report = (await client.get(f"{API}/target/daily-report", params={"date": "2024-05-02"})).json()
    row = report["rows"][0]
    assert row["total_target"] == 1000
    assert row["hourly_production"]["8-9"] == 90
    assert row["hourly_production"]["9-10"] == 110
    assert report["summary"]["total_production"] == 200
    assert report["summary"]["achievement"] == 20.0


async def test_target_bulk_delete(client):
    ids = []
    for line_no in ("L-01", "L-02"):
        response = await client.post(f"{API}/target/", json={
            "date": "2024-05-02", "line_no": line_no, "style_no": "ST-1", "line_target": 50,
        })
        ids.append(response.json()["id"])
    result = (await client.post(f"{API}/target/bulk-delete", json={"ids": ids})).json()
    assert result["deleted"] == 2
    assert (await client.get(f"{API}/target/")).json() == []


async def test_daily_report_upsert_actions(client, style):
    payload = {"date": "2024-05-02", "style_id": style["id"], "line_no": "L-01",
               "target_qty": 200, "production_qty": 100}
    first = (await client.post(f"{API}/daily-production-report/", json=payload)).json()
    assert first["total_amount"] == 250.0
    assert first["net_amount"] == 6000.0

    added = (await client.post(f"{API}/daily-production-report/", json=payload)).json()
    assert added["id"] == first["id"]
    assert added["production_qty"] == 200

    subtracted = (await client.post(f"{API}/daily-production-report/",
                                    json={**payload, "production_qty": 500, "action": "SUBTRACT"})).json()
    assert subtracted["production_qty"] == 0
    assert subtracted["net_amount"] == 0


async def test_daily_report_subtract_without_existing(client, style):
    response = await client.post(f"{API}/daily-production-report/", json={
        "date": "2024-05-02", "style_id": style["id"], "line_no": "L-01",
        "production_qty": 10, "action": "SUBTRACT",
    })
    assert response.status_code == 400


async def test_moving_cutting_input_keeps_source_group_balanced(client, line, style):
    other = (await client.post(f"{API}/lines/", json={"name": "Line 2", "code": "L-02"})).json()
    entry = (await _input(client, line, style, 100)).json()
    await _output(client, line, style, 80)

    response = await client.put(f"{API}/production/entries/{entry['id']}", json={"line_id": other["id"]})
    assert response.status_code == 400
    response = await client.put(f"{API}/production/entries/{entry['id']}", json={"stage": "SEWING"})
    assert response.status_code == 400
    response = await client.put(f"{API}/production/entries/{entry['id']}", json={"date": "2024-05-03"})
    assert response.status_code == 400

    summary = (await client.get(f"{API}/cutting/summary", params={"date": "2024-05-02"})).json()
    assert summary["total_input"] == 100
    assert summary["wip"] == 20


async def test_moving_cutting_input_without_dependent_output(client, line, style):
    other = (await client.post(f"{API}/lines/", json={"name": "Line 2", "code": "L-02"})).json()
    entry = (await _input(client, line, style, 100)).json()
    response = await client.put(f"{API}/production/entries/{entry['id']}", json={"line_id": other["id"]})
    assert response.status_code == 200
    assert response.json()["line_code"] == "L-02"


async def test_target_daily_report_with_short_shift(client, line, style):
    response = await client.post(f"{API}/target/", json={
        "date": "2024-05-02", "line_no": "L-01", "style_no": "ST-1001",
        "line_target": 100, "in_time": "08:00", "out_time": "08:30",
    })
    assert response.status_code == 200, response.text
    await client.post(f"{API}/production/entries", json={
        "date": "2024-05-02", "hour_index": 8, "line_id": line["id"], "style_id": style["id"],
        "stage": "SEWING", "output_qty": 60,
    })

    response = await client.get(f"{API}/target/daily-report", params={"date": "2024-05-02"})
    assert response.status_code == 200
    report = response.json()
    assert report["rows"][0]["working_hours"] == 12
    assert report["summary"]["average_production_per_hour"] == 5.0


async def test_production_balance_per_style(client, style):
    for line_no, qty in (("L-01", 300), ("L-02", 150)):
        await client.post(f"{API}/daily-production-report/", json={
            "date": "2024-05-02", "style_id": style["id"], "line_no": line_no, "production_qty": qty,
        })
    await client.post(f"{API}/shipments/", json={
        "date": "2024-05-03", "style_id": style["id"], "quantity": 200, "destination": "Hamburg",
    })
    await client.post(f"{API}/styles/", json={
        "style_number": "ST-2002", "buyer": "Zara", "order_qty": 500, "unit_price": 3,
    })

    result = (await client.get(f"{API}/production/balances", params={"style_no": "1001"})).json()
    assert result["total"] == 1
    row = result["data"][0]
    assert row["total_produced"] == 450
    assert row["balance"] == 550
    assert row["shipped_qty"] == 200
    assert row["ready_to_ship"] == 250
    assert row["progress"] == 45.0

    result = (await client.get(f"{API}/production/balances")).json()
    assert result["total"] == 2
    assert result["total_order_qty"] == 1500
    assert result["total_balance"] == 1050

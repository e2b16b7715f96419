from conftest import API


async def _assign(client, line, style, start, end=None, target=0):
    return await client.post(f"{API}/style-assignments/", json={
        "line_id": line["id"], "style_id": style["id"],
        "start_date": start, "end_date": end, "target_per_hour": target,
    })


async def test_assign_style_to_line(client, line, style):
    response = await _assign(client, line, style, "2024-05-01", target=120)
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["line_code"] == "L-01"
    assert data["style_number"] == "ST-1001"
    assert data["end_date"] is None
    assert data["target_per_hour"] == 120


async def test_overlapping_assignment_on_same_line(client, line, style):
    first = (await _assign(client, line, style, "2024-05-01")).json()
    other = (await client.post(f"{API}/styles/", json={
        "style_number": "ST-2002", "buyer": "Zara", "order_qty": 500, "unit_price": 3,
    })).json()

    response = await _assign(client, line, other, "2024-06-01")
    assert response.status_code == 409

    closed = await client.put(f"{API}/style-assignments/{first['id']}", json={"end_date": "2024-05-31"})
    assert closed.status_code == 200
    response = await _assign(client, line, other, "2024-06-01")
    assert response.status_code == 200, response.text

    may = (await client.get(f"{API}/style-assignments/", params={"date": "2024-05-15"})).json()
    assert may["total"] == 1
    assert may["data"][0]["style_number"] == "ST-1001"
    june = (await client.get(f"{API}/style-assignments/", params={"date": "2024-06-15"})).json()
    assert [a["style_number"] for a in june["data"]] == ["ST-2002"]


async def test_assignment_end_before_start(client, line, style):
    response = await _assign(client, line, style, "2024-05-10", end="2024-05-01")
    assert response.status_code == 400

    created = (await _assign(client, line, style, "2024-05-10")).json()
    response = await client.put(f"{API}/style-assignments/{created['id']}", json={"end_date": "2024-05-09"})
    assert response.status_code == 400


async def test_assignment_for_missing_style(client, line):
    response = await _assign(client, line, {"id": 999}, "2024-05-01")
    assert response.status_code == 404


async def test_line_with_assignment_cannot_be_deleted(client, line, style):
    created = (await _assign(client, line, style, "2024-05-01")).json()
    assert (await client.delete(f"{API}/lines/{line['id']}")).status_code == 400

    assert (await client.delete(f"{API}/style-assignments/{created['id']}")).status_code == 200
    assert (await client.delete(f"{API}/lines/{line['id']}")).status_code == 200

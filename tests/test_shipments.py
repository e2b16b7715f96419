import pytest

from garment_erp.core.exceptions import BusinessRuleError
from garment_erp.services.shipments import check_order_quantity
from conftest import API


def test_check_order_quantity():
    check_order_quantity(1000, 600, 400)
    with pytest.raises(BusinessRuleError):
        check_order_quantity(1000, 600, 401)


async def _ship(client, style_id, quantity, destination="Hamburg", day="2024-05-01"):
    return await client.post(f"{API}/shipments/", json={
        "date": day, "style_id": style_id, "quantity": quantity, "destination": destination,
    })


async def test_cumulative_shipments_cannot_exceed_order(client, style):
    assert (await _ship(client, style["id"], 600)).status_code == 200
    assert (await _ship(client, style["id"], 400)).status_code == 200

    response = await _ship(client, style["id"], 1)
    assert response.status_code == 400

    detail = (await client.get(f"{API}/styles/{style['id']}")).json()
    assert detail["shipped_qty"] == 1000
    assert detail["remaining_qty"] == 0


async def test_update_excludes_own_quantity(client, style):
    shipment = (await _ship(client, style["id"], 900)).json()
    response = await client.put(f"{API}/shipments/{shipment['id']}", json={"quantity": 1000})
    assert response.status_code == 200
    assert response.json()["quantity"] == 1000

    response = await client.put(f"{API}/shipments/{shipment['id']}", json={"quantity": 1001})
    assert response.status_code == 400


async def test_shipment_for_missing_style(client):
    response = await _ship(client, 999, 10)
    assert response.status_code == 404


async def test_list_summary(client, style):
    await _ship(client, style["id"], 100, "Hamburg", "2024-05-01")
    await _ship(client, style["id"], 50, "Rotterdam", "2024-05-02")
    await _ship(client, style["id"], 25, "Hamburg", "2024-06-01")

    data = (await client.get(f"{API}/shipments/", params={
        "start_date": "2024-05-01", "end_date": "2024-05-31",
    })).json()
    assert data["total"] == 2
    summary = data["summary"]
    assert summary["total_quantity"] == 150
    assert summary["total_value"] == 375.0
    assert {d["destination"] for d in summary["by_destination"]} == {"Hamburg", "Rotterdam"}


async def test_order_qty_cannot_drop_below_shipped(client, style):
    await _ship(client, style["id"], 500)
    response = await client.put(f"{API}/styles/{style['id']}", json={"order_qty": 499})
    assert response.status_code == 400
    response = await client.put(f"{API}/styles/{style['id']}", json={"order_qty": 500})
    assert response.status_code == 200


async def test_style_with_shipments_cannot_be_deleted(client, style):
    await _ship(client, style["id"], 10)
    assert (await client.delete(f"{API}/styles/{style['id']}")).status_code == 400

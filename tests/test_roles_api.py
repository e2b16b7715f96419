from garment_erp.core.permissions import ALL_PERMISSIONS, PERMISSION_CATEGORIES, SYSTEM_ROLES
from conftest import API


async def test_system_roles_are_seeded(client):
    data = (await client.get(f"{API}/admin/roles/")).json()
    codes = {r["code"] for r in data["data"]}
    assert set(SYSTEM_ROLES) <= codes
    super_admin = next(r for r in data["data"] if r["code"] == "SUPER_ADMIN")
    assert super_admin["permissions"] == ALL_PERMISSIONS
    assert super_admin["user_count"] == 1


async def test_permission_catalog(client):
    data = (await client.get(f"{API}/admin/roles/permissions")).json()
    assert data["total"] == len(ALL_PERMISSIONS)
    assert [c["name"] for c in data["categories"]] == list(PERMISSION_CATEGORIES)


async def test_create_role_normalizes_permissions(client):
    response = await client.post(f"{API}/admin/roles/", json={
        "name": "Store Keeper", "code": "STORE_KEEPER",
        "permissions": ["READ_SHIPMENT", "READ_LINE", "READ_SHIPMENT"],
    })
    assert response.status_code == 200, response.text
    assert response.json()["permissions"] == ["READ_LINE", "READ_SHIPMENT"]
    assert response.json()["is_system"] is False

    duplicate = await client.post(f"{API}/admin/roles/", json={"name": "Other", "code": "STORE_KEEPER"})
    assert duplicate.status_code == 409


async def test_unknown_permission_is_rejected(client):
    response = await client.put(f"{API}/admin/roles/USER", json={"permissions": ["READ_EVERYTHING"]})
    assert response.status_code == 400


async def test_super_admin_permissions_are_locked(client):
    response = await client.put(f"{API}/admin/roles/SUPER_ADMIN", json={"permissions": ["READ_USER"]})
    assert response.status_code == 400


async def test_bulk_update_is_all_or_nothing(client):
    before = (await client.get(f"{API}/admin/roles/USER")).json()["role"]["permissions"]
    response = await client.put(f"{API}/admin/roles/", json={"role_updates": [
        {"role": "USER", "permissions": ["READ_CASHBOOK"]},
        {"role": "MANAGER", "permissions": ["NOT_A_PERMISSION"]},
    ]})
    assert response.status_code == 400
    after = (await client.get(f"{API}/admin/roles/USER")).json()["role"]["permissions"]
    assert after == before

    response = await client.put(f"{API}/admin/roles/", json={"role_updates": [
        {"role": "USER", "permissions": ["READ_CASHBOOK"]},
    ]})
    assert response.status_code == 200
    assert response.json()["data"][0]["permissions"] == ["READ_CASHBOOK"]


async def test_toggle_category(client):
    await client.put(f"{API}/admin/roles/USER", json={"permissions": ["READ_USER"]})
    selected = await client.post(f"{API}/admin/roles/USER/categories/Cashbook Management", json={"checked": True})
    assert selected.status_code == 200
    assert selected.json()["permissions"] == ["READ_USER"] + PERMISSION_CATEGORIES["Cashbook Management"]

    detail = (await client.get(f"{API}/admin/roles/USER")).json()
    assert detail["categories"]["Cashbook Management"] == "all"
    assert detail["categories"]["User Management"] == "some"

    cleared = await client.post(f"{API}/admin/roles/USER/categories/Cashbook Management", json={"checked": False})
    assert cleared.json()["permissions"] == ["READ_USER"]


async def test_system_role_cannot_be_deleted(client):
    assert (await client.delete(f"{API}/admin/roles/MANAGER")).status_code == 400


async def test_role_with_users_cannot_be_deleted(client):
    await client.post(f"{API}/admin/roles/", json={"name": "Auditor", "code": "AUDITOR"})
    user = await client.post(f"{API}/admin/users/", json={"username": "rahim", "role_codes": ["AUDITOR"]})
    assert user.status_code == 200, user.text
    assert (await client.delete(f"{API}/admin/roles/AUDITOR")).status_code == 400

    await client.put(f"{API}/admin/users/{user.json()['id']}/roles", json={"role_codes": ["USER"]})
    assert (await client.delete(f"{API}/admin/roles/AUDITOR")).status_code == 200


async def test_user_permissions_are_union_of_roles(client):
    response = await client.post(f"{API}/admin/users/", json={
        "username": "karim", "role_codes": ["USER", "CASHBOOK_MANAGER"],
    })
    permissions = response.json()["permissions"]
    assert "READ_PRODUCTION" in permissions
    assert "CREATE_CASHBOOK" in permissions
    assert len(permissions) == len(set(permissions))


async def test_user_with_unknown_role(client):
    response = await client.post(f"{API}/admin/users/", json={"username": "x", "role_codes": ["GHOST"]})
    assert response.status_code == 400


async def test_default_operator_is_protected(client):
    assert (await client.delete(f"{API}/admin/users/1")).status_code == 400
    response = await client.put(f"{API}/admin/users/1/roles", json={"role_codes": ["USER"]})
    assert response.status_code == 400

import pytest

from garment_erp.core import permissions as perm


def test_catalog_has_no_duplicates():
    assert len(perm.ALL_PERMISSIONS) == len(set(perm.ALL_PERMISSIONS))
    categorized = [p for codes in perm.PERMISSION_CATEGORIES.values() for p in codes]
    assert sorted(categorized) == sorted(perm.ALL_PERMISSIONS)


def test_normalize_dedupes_and_orders():
    result = perm.normalize_permissions(["READ_CASHBOOK", "READ_USER", "READ_CASHBOOK"])
    assert result == ["READ_USER", "READ_CASHBOOK"]


def test_normalize_rejects_unknown_code():
    with pytest.raises(ValueError):
        perm.normalize_permissions(["READ_USER", "FLY_TO_MOON"])


def test_select_category_keeps_other_permissions():
    result = perm.select_category(["READ_USER"], "Cashbook Management")
    assert "READ_USER" in result
    assert set(perm.PERMISSION_CATEGORIES["Cashbook Management"]) <= set(result)


def test_deselect_category_only_removes_that_category():
    start = ["READ_USER", "READ_CASHBOOK", "CREATE_CASHBOOK"]
    assert perm.deselect_category(start, "Cashbook Management") == ["READ_USER"]


def test_unknown_category():
    with pytest.raises(ValueError):
        perm.select_category([], "Nope")


def test_category_state():
    category = "Cutting Management"
    assert perm.category_state([], category) == "none"
    assert perm.category_state(["READ_CUTTING"], category) == "some"
    assert perm.category_state(perm.PERMISSION_CATEGORIES[category], category) == "all"


def test_super_admin_has_everything():
    assert perm.has_permission("SUPER_ADMIN", [], "DELETE_USER")
    assert perm.can_access_route("SUPER_ADMIN", [], "/admin/backup")


def test_role_defaults_and_explicit_permissions():
    assert perm.has_permission("CASHBOOK_MANAGER", [], "CREATE_CASHBOOK")
    assert not perm.has_permission("CASHBOOK_MANAGER", [], "DELETE_CASHBOOK")
    assert perm.has_permission("USER", ["DELETE_CASHBOOK"], "DELETE_CASHBOOK")


def test_route_access():
    assert perm.can_access_route("USER", [], "/profile")
    assert perm.can_access_route("USER", [], "/dashboard")
    assert not perm.can_access_route("USER", [], "/cashbook")
    assert perm.can_access_route("REPORT_VIEWER", [], "/cashbook/monthly-report")

import io
import os
import tarfile
from datetime import datetime, timedelta

import pytest

from garment_erp.core.exceptions import BusinessRuleError
from garment_erp.services import backup as backup_service
from conftest import API


async def test_full_backup_writes_manifest(client, backup_dir, line):
    response = await client.post(f"{API}/backup/", json={"backup_type": "full"})
    assert response.status_code == 200, response.text
    meta = response.json()["backup"]
    assert meta["status"] == "success"
    assert meta["checksum"]
    assert os.path.isdir(meta["location"])
    assert os.path.exists(os.path.join(meta["location"], backup_service.MANIFEST_FILE))

    verification = backup_service.verify_backup_dir(meta["location"], meta["checksum"])
    assert verification["valid"], verification["errors"]

    listed = (await client.get(f"{API}/backup/")).json()
    assert listed["total"] == 1
    assert listed["backups"][0]["id"] == meta["id"]


async def test_compressed_backup_can_be_downloaded(client, backup_dir):
    meta = (await client.post(f"{API}/backup/", json={"config": {"compression": True}})).json()["backup"]
    assert meta["location"].endswith(".tar.gz")

    response = await client.get(f"{API}/backup/{meta['id']}/download")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/gzip"


async def test_backup_without_content_is_rejected(client, backup_dir):
    response = await client.post(f"{API}/backup/", json={"config": {
        "database": False, "production_data": False, "user_data": False,
    }})
    assert response.status_code == 400
    assert backup_service.list_backups() == []


async def test_backup_that_writes_no_data_file_fails(client, backup_dir, monkeypatch):
    monkeypatch.setattr(backup_service, "get_db_path", lambda: None)
    response = await client.post(f"{API}/backup/", json={"config": {
        "database": True, "production_data": False, "user_data": False,
    }})
    assert response.status_code == 500
    assert backup_service.list_backups()[0]["status"] == "failed"


async def test_tampered_backup_fails_validation(client, backup_dir):
    meta = (await client.post(f"{API}/backup/", json={})).json()["backup"]
    with open(os.path.join(meta["location"], backup_service.PRODUCTION_FILE), "a", encoding="utf-8") as f:
        f.write(" ")

    response = await client.post(f"{API}/backup/recover", json={"backup_id": meta["id"]})
    assert response.status_code == 400


async def test_full_recovery_restores_data(client, backup_dir, line):
    await client.post(f"{API}/cashbook/cash-received", json={"date": "2024-05-01", "amount": 1000})
    meta = (await client.post(f"{API}/backup/", json={"config": {"compression": True}})).json()["backup"]

    entries = (await client.get(f"{API}/cashbook/")).json()["data"]
    await client.delete(f"{API}/cashbook/{entries[0]['id']}")
    await client.post(f"{API}/cashbook/cash-received", json={"date": "2024-05-02", "amount": 5})

    response = await client.post(f"{API}/backup/recover", json={
        "backup_id": meta["id"], "recovery_type": "full", "overwrite_existing": True,
    })
    assert response.status_code == 200, response.text
    result = response.json()
    assert result["mode"] == "replace"
    assert result["recovery_point"]

    data = (await client.get(f"{API}/cashbook/")).json()
    assert data["total"] == 1
    assert data["closing_balance"] == 1000


async def test_selective_recovery_requires_tables(client, backup_dir):
    meta = (await client.post(f"{API}/backup/", json={})).json()["backup"]
    response = await client.post(f"{API}/backup/recover", json={
        "backup_id": meta["id"], "recovery_type": "selective", "create_recovery_point": False,
    })
    assert response.status_code == 400


async def test_recover_unknown_backup(client, backup_dir):
    response = await client.post(f"{API}/backup/recover", json={"backup_id": "missing"})
    assert response.status_code == 404


async def test_incremental_backup_only_contains_changes(client, backup_dir, line):
    await client.post(f"{API}/backup/", json={"backup_type": "full"})
    await client.post(f"{API}/lines/", json={"name": "Line 2", "code": "L-02"})

    meta = (await client.post(f"{API}/backup/", json={"backup_type": "incremental"})).json()["backup"]
    assert meta["since"]
    production = backup_service._read_json(os.path.join(meta["location"], backup_service.PRODUCTION_FILE), {})
    assert [l["code"] for l in production["data"]["lines"]] == ["L-02"]


async def test_delete_backup(client, backup_dir):
    meta = (await client.post(f"{API}/backup/", json={})).json()["backup"]
    assert (await client.delete(f"{API}/backup/{meta['id']}")).status_code == 200
    assert not os.path.exists(meta["location"])
    assert (await client.get(f"{API}/backup/{meta['id']}")).status_code == 404


def test_cleanup_keeps_latest_auto_backups(backup_dir):
    now = datetime.now()
    items = []
    for i in range(4):
        items.append({
            "id": f"auto_{i}", "timestamp": (now - timedelta(hours=i)).isoformat(),
            "trigger": "auto", "status": "success", "config": {"retention": 30}, "location": "",
        })
    items.append({
        "id": "old_manual", "timestamp": (now - timedelta(days=40)).isoformat(),
        "trigger": "manual", "status": "success", "config": {"retention": 30}, "location": "",
    })
    backup_service.save_metadata(items)

    removed = backup_service.cleanup_old_backups(keep_count=2, now=now)
    assert sorted(removed) == ["auto_2", "auto_3", "old_manual"]
    assert [m["id"] for m in backup_service.list_backups()] == ["auto_0", "auto_1"]


def test_invalid_cron_is_rejected(backup_dir):
    with pytest.raises(BusinessRuleError):
        backup_service.add_schedule("bad", "every day", "full", {})


async def test_schedule_lifecycle(client, backup_dir):
    response = await client.post(f"{API}/backup/schedule", json={
        "name": "Nightly", "cron_expression": "0 2 * * *",
    })
    assert response.status_code == 200, response.text
    schedule = response.json()["schedule"]
    assert schedule["enabled"] is True

    response = await client.put(f"{API}/backup/schedule", json={"id": schedule["id"], "enabled": False})
    assert response.json()["schedule"]["enabled"] is False

    bad = await client.put(f"{API}/backup/schedule", json={"id": schedule["id"], "cron_expression": "x"})
    assert bad.status_code == 400

    listed = (await client.get(f"{API}/backup/schedule")).json()
    assert listed["total"] == 1

    assert (await client.delete(f"{API}/backup/schedule", params={"id": schedule["id"]})).status_code == 200
    assert (await client.delete(f"{API}/backup/schedule", params={"id": schedule["id"]})).status_code == 404


async def test_scheduler_status_when_stopped(client):
    data = (await client.get(f"{API}/backup/scheduler/status")).json()
    assert data["scheduler"]["running"] is False
    assert "keep_count" in data["auto_backup"]


async def test_scheduler_registers_persisted_schedules(backup_dir):
    from garment_erp.services import scheduler as scheduler_service

    schedule = backup_service.add_schedule("Weekly", "30 1 * * 0", "differential", {})
    scheduler_service.init_scheduler()
    try:
        status = scheduler_service.get_scheduler_status()
        assert status["running"] is True
        assert f"backup_schedule_{schedule['id']}" in [job["id"] for job in status["jobs"]]
        assert scheduler_service.next_run_time(schedule["id"])

        scheduler_service.sync_schedule_job({**schedule, "enabled": False})
        assert scheduler_service.next_run_time(schedule["id"]) is None
    finally:
        scheduler_service.shutdown_scheduler()


async def test_differential_backup_is_based_on_last_full(client, backup_dir, line):
    full = (await client.post(f"{API}/backup/", json={"backup_type": "full"})).json()["backup"]
    await client.post(f"{API}/lines/", json={"name": "Line 2", "code": "L-02"})
    await client.post(f"{API}/backup/", json={"backup_type": "incremental"})
    await client.post(f"{API}/lines/", json={"name": "Line 3", "code": "L-03"})

    meta = (await client.post(f"{API}/backup/", json={"backup_type": "differential"})).json()["backup"]
    assert meta["since"] == full["created_at_utc"]
    production = backup_service._read_json(os.path.join(meta["location"], backup_service.PRODUCTION_FILE), {})
    assert sorted(l["code"] for l in production["data"]["lines"]) == ["L-02", "L-03"]


async def test_incremental_backup_cannot_overwrite_existing_data(client, backup_dir, line):
    await client.post(f"{API}/cashbook/cash-received", json={"date": "2024-05-01", "amount": 1000})
    await client.post(f"{API}/backup/", json={"backup_type": "full"})
    await client.post(f"{API}/cashbook/cash-received", json={"date": "2024-05-02", "amount": 5})
    meta = (await client.post(f"{API}/backup/", json={"backup_type": "incremental"})).json()["backup"]

    response = await client.post(f"{API}/backup/recover", json={
        "backup_id": meta["id"], "overwrite_existing": True, "create_recovery_point": False,
    })
    assert response.status_code == 400

    response = await client.post(f"{API}/backup/recover", json={
        "backup_id": meta["id"], "create_recovery_point": False,
    })
    assert response.status_code == 200, response.text
    assert response.json()["mode"] == "merge"

    data = (await client.get(f"{API}/cashbook/")).json()
    assert data["total"] == 2
    assert data["closing_balance"] == 1005
    assert len((await client.get(f"{API}/lines/")).json()["data"]) == 1


async def test_database_only_recovery_swaps_database_file(client, backup_dir, line):
    meta = (await client.post(f"{API}/backup/", json={"backup_type": "full"})).json()["backup"]
    assert os.path.exists(os.path.join(meta["location"], backup_service.DATABASE_FILE))
    await client.post(f"{API}/lines/", json={"name": "Line 2", "code": "L-02"})

    response = await client.post(f"{API}/backup/recover", json={
        "backup_id": meta["id"], "recovery_type": "database_only", "create_recovery_point": False,
    })
    assert response.status_code == 200, response.text
    assert response.json()["restored_database"] is True

    lines = (await client.get(f"{API}/lines/")).json()["data"]
    assert [l["code"] for l in lines] == ["L-01"]


def test_backup_location_must_be_inside_backup_dir(backup_dir):
    root = backup_service.get_backup_dir()
    backup_service._check_location(os.path.join(root, "2024-05-01", "backup_1"))
    with pytest.raises(BusinessRuleError):
        backup_service._check_location(root.rstrip(os.sep) + "2")
    with pytest.raises(BusinessRuleError):
        backup_service._check_location(os.path.join(root, "..", "elsewhere"))


def test_archive_with_parent_path_member_is_rejected(tmp_path):
    archive = tmp_path / "evil.tar.gz"
    with tarfile.open(archive, "w:gz") as tar:
        payload = b"{}"
        info = tarfile.TarInfo("../outside.json")
        info.size = len(payload)
        tar.addfile(info, io.BytesIO(payload))

    target = tmp_path / "extract"
    target.mkdir()
    with pytest.raises(BusinessRuleError):
        backup_service._extract_archive(str(archive), str(target))
    assert not (tmp_path / "outside.json").exists()

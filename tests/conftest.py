import os
import tempfile

# 测试使用独立的数据库文件与备份目录，必须在导入应用之前设置
_TEST_DIR = tempfile.mkdtemp(prefix="garment_erp_test_")
os.environ["DATABASE_URI"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["BACKUP_DIR"] = os.path.join(_TEST_DIR, "backups")
os.environ["LOG_DIR"] = ""
os.environ["AUTO_BACKUP_ENABLED"] = "false"

import pytest
from httpx import AsyncClient, ASGITransport

from garment_erp.core.config import settings
from garment_erp.db import session as db_session
from garment_erp.db.base import Base
from garment_erp.db.init_db import seed_reference_data
from garment_erp.main import app

API = settings.API_V1_STR


@pytest.fixture
async def db():
    """每个用例重建数据表并写入基础数据"""
    async with db_session.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with db_session.SessionLocal() as session:
        await seed_reference_data(session)
    async with db_session.SessionLocal() as session:
        yield session
    await db_session.engine.dispose()


@pytest.fixture
async def client(db):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def backup_dir(tmp_path, monkeypatch):
    path = tmp_path / "backups"
    monkeypatch.setattr(settings, "BACKUP_DIR", str(path))
    return path


@pytest.fixture
async def line(client):
    response = await client.post(f"{API}/lines/", json={"name": "Line 1", "code": "L-01"})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
async def style(client):
    response = await client.post(f"{API}/styles/", json={
        "style_number": "ST-1001",
        "buyer": "H&M",
        "po_number": "PO-77",
        "order_qty": 1000,
        "unit_price": 2.5,
        "commission_percentage": 20,
    })
    assert response.status_code == 200, response.text
    return response.json()

import os
import uuid

import psycopg
import pytest
from fastapi.testclient import TestClient

from gacp.main import app


@pytest.fixture(scope="session")
def sync_dsn() -> str:
    """Synchronous (psycopg) DSN derived from async SQLAlchemy DATABASE_URL."""

    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        pytest.skip("DATABASE_URL not set (CI provides a migrated Postgres service)")
    return dsn.replace("postgresql+asyncpg://", "postgresql://")


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


def _insert_user(sync_dsn: str, *, role: str, language: str = "th") -> uuid.UUID:
    uid = uuid.uuid4()
    with psycopg.connect(sync_dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(
                "INSERT INTO users (id, email, full_name, role, preferred_language) VALUES (%s, %s, %s, %s, %s)",
                (uid, f"{role}-{uid.hex[:8]}@test.local", f"Test {role}", role, language),
            )
        conn.commit()
    return uid


@pytest.fixture()
def farmer_id(sync_dsn: str) -> uuid.UUID:
    return _insert_user(sync_dsn, role="farmer")


@pytest.fixture()
def english_farmer_id(sync_dsn: str) -> uuid.UUID:
    return _insert_user(sync_dsn, role="farmer", language="en")


@pytest.fixture()
def auditor_id(sync_dsn: str) -> uuid.UUID:
    return _insert_user(sync_dsn, role="auditor")


@pytest.fixture()
def product_id(sync_dsn: str) -> uuid.UUID:
    pid = uuid.uuid4()
    with psycopg.connect(sync_dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(
                "INSERT INTO products (id, name, name_en, category) VALUES (%s, %s, %s, %s)",
                (pid, "ขมิ้นชัน", f"Turmeric {pid.hex[:8]}", "herb"),
            )
        conn.commit()
    return pid


@pytest.fixture()
def application_payload(farmer_id: uuid.UUID, product_id: uuid.UUID) -> dict:
    return {
        "applicant_id": str(farmer_id),
        "product_id": str(product_id),
        "farm_name": "สวนสมุนไพรบ้านดอน",
        "farm_address": "123 หมู่ 4 ต.บ้านดอน อ.เมือง จ.เชียงใหม่",
        "farm_area_rai": "12.5",
        "crop_types": ["turmeric"],
        "cultivation_methods": ["organic"],
    }

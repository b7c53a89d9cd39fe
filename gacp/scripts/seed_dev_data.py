"""Development seed data.

Idempotent: safe to run multiple times.

Usage:
  DATABASE_URL=postgresql+asyncpg://... python -m gacp.scripts.seed_dev_data

Kept sync (psycopg) so it runs in CI and one-off local dev without an event
loop.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field

import psycopg
from psycopg.types.json import Jsonb

from gacp.workflow.status import Role

# One demo account per workflow role.
DEMO_USERS: tuple[tuple[str, str, str, str], ...] = (
    ("farmer@demo.local", "เกษตรกร ทดสอบ", Role.FARMER.value, "th"),
    ("reviewer@demo.local", "Demo Reviewer", Role.REVIEWER.value, "th"),
    ("auditor@demo.local", "Demo Auditor", Role.AUDITOR.value, "th"),
    ("admin@demo.local", "Demo Admin", Role.ADMIN.value, "en"),
    ("superadmin@demo.local", "Demo Super Admin", Role.SUPER_ADMIN.value, "en"),
)

# The six herbs covered by the Thai GACP programme, in listing order.
PRODUCTS: tuple[tuple[str, str, str, list[str]], ...] = (
    ("กัญชา", "Cannabis", "controlled", ["license_copy", "security_plan", "lab_test_thc_cbd"]),
    ("ขมิ้นชัน", "Turmeric", "herb", ["soil_test", "curcumin_assay"]),
    ("ขิง", "Ginger", "herb", ["soil_test"]),
    ("กระชายดำ", "Black Galingale", "herb", ["soil_test", "lab_sampling"]),
    ("ไพล", "Plai", "herb", ["soil_test"]),
    ("กระท่อม", "Kratom", "controlled", ["license_copy", "lab_sampling"]),
)


@dataclass(frozen=True)
class SeedResult:
    user_ids: dict[str, uuid.UUID] = field(default_factory=dict)
    product_ids: dict[str, uuid.UUID] = field(default_factory=dict)


def _sync_dsn(database_url: str) -> str:
    # CI/dev uses the SQLAlchemy asyncpg DSN; psycopg expects the plain one.
    return database_url.replace("postgresql+asyncpg://", "postgresql://")


def seed_dev_data(database_url: str) -> SeedResult:
    """Seed demo users (keyed by role) and the GACP product catalogue."""

    dsn = _sync_dsn(database_url)
    user_ids: dict[str, uuid.UUID] = {}
    product_ids: dict[str, uuid.UUID] = {}

    with psycopg.connect(dsn) as conn:
        with conn.cursor() as cur:
            for email, full_name, role, language in DEMO_USERS:
                cur.execute(
                    """
                    INSERT INTO users (id, email, full_name, role, preferred_language)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (email) DO UPDATE
                      SET role = EXCLUDED.role, full_name = EXCLUDED.full_name
                    RETURNING id
                    """,
                    (uuid.uuid4(), email, full_name, role, language),
                )
                user_ids[role] = cur.fetchone()[0]

            for order, (name, name_en, category, requirements) in enumerate(PRODUCTS, start=1):
                cur.execute(
                    """
                    INSERT INTO products (id, name, name_en, category, requirements, sort_order)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (name_en) DO UPDATE
                      SET name = EXCLUDED.name,
                          category = EXCLUDED.category,
                          requirements = EXCLUDED.requirements,
                          sort_order = EXCLUDED.sort_order
                    RETURNING id
                    """,
                    (uuid.uuid4(), name, name_en, category, Jsonb(requirements), order),
                )
                product_ids[name_en] = cur.fetchone()[0]

            conn.commit()

    return SeedResult(user_ids=user_ids, product_ids=product_ids)


def main() -> None:
    database_url = os.environ.get("DATABASE_URL") or os.environ.get("database_url")
    if not database_url:
        raise SystemExit("DATABASE_URL env var is required")

    result = seed_dev_data(database_url)
    print("Seeded dev data:")
    for role, user_id in result.user_ids.items():
        print(f"- user {role}: {user_id}")
    for name, product_id in result.product_ids.items():
        print(f"- product {name}: {product_id}")


if __name__ == "__main__":
    main()

import os

import psycopg

from gacp.scripts.seed_dev_data import DEMO_USERS, PRODUCTS, seed_dev_data


def test_seed_dev_data_is_idempotent_and_creates_roles_and_products(sync_dsn):
    database_url = os.environ["DATABASE_URL"]

    # Run twice to assert idempotency.
    r1 = seed_dev_data(database_url)
    r2 = seed_dev_data(database_url)

    assert r1 == r2
    assert set(r1.user_ids) == {"farmer", "reviewer", "auditor", "admin", "super_admin"}
    assert "Cannabis" in r1.product_ids

    with psycopg.connect(sync_dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT COUNT(*) FROM users WHERE email = ANY(%s)",
                ([u[0] for u in DEMO_USERS],),
            )
            assert cur.fetchone()[0] == len(DEMO_USERS)

            cur.execute(
                "SELECT name_en FROM products WHERE name_en = ANY(%s) ORDER BY sort_order",
                ([p[1] for p in PRODUCTS],),
            )
            assert [row[0] for row in cur.fetchall()] == [p[1] for p in PRODUCTS]

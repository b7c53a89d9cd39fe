import uuid

import psycopg
import pytest

from gacp.crud import application as application_crud
from gacp.crud.application import create_application, get_application, write_workflow_state
from gacp.database import SessionLocal
from gacp.schemas.application import ApplicationCreate
from gacp.services import workflow_service as ws
from gacp.services.workflow_service import Actor, WorkflowService
from gacp.workflow.status import Role, WorkflowStatus
from gacp.workflow.transitions import EventType, WorkflowEvent


async def _new_application(farmer_id, product_id):
    async with SessionLocal() as session:
        app = await create_application(
            session,
            ApplicationCreate(
                applicant_id=farmer_id,
                product_id=product_id,
                farm_name="Test farm",
                farm_address="Test address",
                crop_types=["ginger"],
            ),
        )
        return app.id


@pytest.mark.anyio
async def test_version_guard_rejects_stale_writes(farmer_id, product_id):
    app_id = await _new_application(farmer_id, product_id)

    async with SessionLocal() as session:
        ok = await write_workflow_state(
            session,
            application_id=app_id,
            expected_version=1,
            workflow_status=WorkflowStatus.SUBMITTED,
            revision_count=0,
        )
        stale = await write_workflow_state(
            session,
            application_id=app_id,
            expected_version=1,
            workflow_status=WorkflowStatus.EXPIRED,
            revision_count=0,
        )
        await session.commit()

    assert ok is True
    assert stale is False

    async with SessionLocal() as session:
        app = await get_application(session, application_id=app_id)
        assert app.workflow_status == "SUBMITTED"
        assert app.status == "SUBMITTED"
        assert app.version == 2
        assert app.submitted_at is not None


@pytest.mark.anyio
async def test_concurrent_writer_triggers_one_retry(farmer_id, product_id, sync_dsn, monkeypatch):
    app_id = await _new_application(farmer_id, product_id)
    real_write = application_crud.write_workflow_state
    attempts = []

    async def write_after_concurrent_edit(session, **kwargs):
        if not attempts:
            # Another request commits between our read and our write.
            with psycopg.connect(sync_dsn) as conn:
                with conn.cursor() as cur:
                    cur.execute("UPDATE applications SET version = version + 1 WHERE id = %s", (app_id,))
                conn.commit()
        attempts.append(kwargs["expected_version"])
        return await real_write(session, **kwargs)

    monkeypatch.setattr(ws, "write_workflow_state", write_after_concurrent_edit)

    async with SessionLocal() as session:
        outcome = await WorkflowService().apply_event(
            session,
            application_id=app_id,
            event=WorkflowEvent(type=EventType.SUBMIT),
            actor=Actor(role=Role.FARMER, id=farmer_id),
        )

    assert outcome.ok, outcome.error
    assert attempts == [1, 2]
    assert outcome.application.version == 3
    assert outcome.application.workflow_status == "SUBMITTED"

    with psycopg.connect(sync_dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT count(*) FROM audit_logs WHERE entity_id = %s AND action = 'workflow_transition'",
                (uuid.UUID(str(app_id)),),
            )
            assert cur.fetchone()[0] == 1

from __future__ import annotations

import uuid

from fastapi import Header, HTTPException, Request

from gacp.services.workflow_service import Actor
from gacp.workflow.notifications import normalize_locale
from gacp.workflow.status import Role


async def get_actor(
    request: Request,
    x_actor_id: str | None = Header(None),
    x_actor_role: str | None = Header(None),
    accept_language: str | None = Header(None),
) -> Actor:
    """Caller identity as forwarded by the gateway.

    No role header means an internal caller (payment webhook, scheduler).
    """

    actor_id = None
    if x_actor_id is not None:
        try:
            actor_id = uuid.UUID(x_actor_id)
        except ValueError:
            raise HTTPException(status_code=422, detail="Invalid X-Actor-Id")

    role = None
    if x_actor_role is not None:
        try:
            role = Role(x_actor_role.strip().lower())
        except ValueError:
            raise HTTPException(status_code=422, detail="Invalid X-Actor-Role")

    return Actor(
        id=actor_id,
        role=role,
        locale=normalize_locale(accept_language),
        request_id=getattr(request.state, "request_id", None),
    )


def parse_path_uuid(value: str, *, entity: str) -> uuid.UUID:
    # Malformed ids in the path are indistinguishable from missing records.
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"{entity} not found")


def parse_query_uuid(value: str | None, *, name: str) -> uuid.UUID | None:
    if value is None:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid {name}")

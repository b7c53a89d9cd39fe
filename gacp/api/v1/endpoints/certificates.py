from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from gacp.crud.application import get_application
from gacp.crud.certificate import get_certificate_by_number
from gacp.database import get_db
from gacp.schemas.certificate import CertificateVerification
from gacp.workflow.status import WorkflowStatus

router = APIRouter(prefix="/certificates", tags=["certificates"])


@router.get("/{certificate_number}", response_model=CertificateVerification)
async def verify_certificate_endpoint(
    certificate_number: str,
    session: AsyncSession = Depends(get_db),
) -> CertificateVerification:
    """Public lookup printed on the certificate. Valid while CERTIFIED and not expired."""

    certificate = await get_certificate_by_number(session, certificate_number=certificate_number)
    if certificate is None:
        raise HTTPException(status_code=404, detail="Certificate not found")

    app = await get_application(session, application_id=certificate.application_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Certificate not found")

    return CertificateVerification(
        certificate_number=certificate.certificate_number,
        application_number=app.application_number,
        workflow_status=app.workflow_status,
        issued_at=certificate.issued_at,
        expires_at=certificate.expires_at,
        is_valid=(
            app.workflow_status == WorkflowStatus.CERTIFIED.value
            and certificate.expires_at > datetime.now(timezone.utc)
        ),
    )

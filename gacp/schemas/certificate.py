from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class CertificateRead(BaseModel):
    id: UUID
    application_id: UUID
    certificate_number: str
    issued_at: datetime
    expires_at: datetime

    class Config:
        from_attributes = True


class CertificateVerification(BaseModel):
    certificate_number: str
    application_number: str
    workflow_status: str
    issued_at: datetime
    expires_at: datetime
    is_valid: bool

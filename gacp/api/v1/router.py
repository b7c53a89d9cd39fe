from fastapi import APIRouter

from gacp.api.v1.endpoints.applications import router as applications_router
from gacp.api.v1.endpoints.assessments import router as assessments_router
from gacp.api.v1.endpoints.certificates import router as certificates_router
from gacp.api.v1.endpoints.notifications import router as notifications_router
from gacp.api.v1.endpoints.payments import router as payments_router
from gacp.api.v1.endpoints.workflow import router as workflow_router

router = APIRouter()


@router.get("/ping")
async def ping():
    return {"ping": "pong"}


router.include_router(applications_router)
router.include_router(workflow_router)
router.include_router(payments_router)
router.include_router(assessments_router)
router.include_router(notifications_router)
router.include_router(certificates_router)

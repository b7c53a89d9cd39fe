import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from gacp.api.errors import register_exception_handlers
from gacp.api.v1.router import router as v1_router
from gacp.config import settings

logger = logging.getLogger("gacp.api")


def _request_id(header: str | None) -> str:
    # Stored in audit_logs.request_id, so only well-formed UUIDs are kept.
    if header:
        try:
            return str(uuid.UUID(header))
        except ValueError:
            logger.debug("request_id_replaced value=%.64r", header)
    return str(uuid.uuid4())


def create_app() -> FastAPI:
    app = FastAPI(title="GACP Certification Workflow API")

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID"],
        )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Attach a request id to every response and log a compact access line.

        The caller's X-Request-ID is reused when it is a UUID, otherwise a UUID4
        is generated.
        """

        request_id = _request_id(request.headers.get("x-request-id"))
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "access request_id=%s method=%s path=%s status=%s duration_ms=%.2f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    register_exception_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(v1_router, prefix="/api/v1")
    return app


app = create_app()

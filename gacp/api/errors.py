import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gacp.services.errors import NotFoundError, WorkflowRejected
from gacp.workflow.errors import ErrorKind

logger = logging.getLogger("gacp.api")

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_TRANSITION: 422,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.CONCURRENCY_CONFLICT: 409,
    ErrorKind.CORRUPT_STATE: 500,
}


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _envelope(request: Request, status_code: int, payload: dict) -> JSONResponse:
    request_id = _get_request_id(request)
    if request_id:
        payload["request_id"] = request_id

    response = JSONResponse(status_code=status_code, content=payload)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _envelope(request, exc.status_code, {"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _envelope(request, 422, {"detail": exc.errors()})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _envelope(request, 404, {"detail": str(exc)})

    @app.exception_handler(WorkflowRejected)
    async def workflow_rejected_handler(request: Request, exc: WorkflowRejected):
        status_code = STATUS_BY_KIND.get(exc.kind, 500)
        if exc.kind == ErrorKind.CORRUPT_STATE:
            # Already logged at CRITICAL by the service; keep internals out of the body.
            detail = "Internal Server Error"
        else:
            detail = exc.error.message
        return _envelope(request, status_code, {"detail": detail, "error": exc.kind.value})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_exception request_id=%s", _get_request_id(request))
        return _envelope(request, 500, {"detail": "Internal Server Error"})

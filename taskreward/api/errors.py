import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..services.errors import ErrorKind, WorkflowError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_PARENT_ROLE: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_RELATED: status.HTTP_409_CONFLICT,
    ErrorKind.INSUFFICIENT_POINTS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_CODE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=code,
        content={"success": False, "error": str(exc.kind), "message": exc.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WorkflowError, workflow_error_handler)

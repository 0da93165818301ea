import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from tischbuchung.exceptions import DomainError

logger = logging.getLogger("tischbuchung.exception_handlers")


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} → {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={'detail': exc.message})


async def database_unavailable_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.exception(f"Datenbank nicht erreichbar: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={'detail': 'Datenbank nicht erreichbar'},
    )


EXCEPTION_HANDLERS = {
    DomainError: domain_error_handler,
    OperationalError: database_unavailable_handler,
}


def register_exception_handlers(app):
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .api.audit import router as audit_router
from .api.cto import router as cto_router
from .api.decisions import router as decisions_router
from .api.health import router as health_router
from .api.rules import router as rules_router
from .api.simulation import router as simulation_router
from .config import get_settings
from .database import init_db, session_scope
from .errors import AssetServiceError, CtoError, InvalidComponentListError
from .logging_config import configure_logging
from .services.seeding import seed_default_ruleset


def _error_body(exc: CtoError) -> dict:
    body = {"error": type(exc).__name__, "message": exc.message}
    if isinstance(exc, InvalidComponentListError):
        body["code"] = exc.code
        body["field"] = exc.field
    if isinstance(exc, AssetServiceError):
        body["upstream_status_code"] = exc.upstream_status_code
    return body


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(title="CTO Rule Engine", version=__version__)

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(CtoError)
    async def handle_cto_error(request: Request, exc: CtoError):
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc))

    @app.on_event("startup")
    def startup() -> None:
        init_db()
        if not settings.SEED_DEFAULT_RULESET:
            return
        with session_scope() as db:
            seed_default_ruleset(db)

    app.include_router(health_router, prefix="/api/v1")
    app.include_router(cto_router, prefix="/api/v1")
    app.include_router(rules_router, prefix="/api/v1")
    app.include_router(decisions_router, prefix="/api/v1")
    app.include_router(simulation_router, prefix="/api/v1")
    app.include_router(audit_router, prefix="/api/v1")

    return app


app = create_app()

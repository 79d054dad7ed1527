from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from bounty_rbac.core import config
from bounty_rbac.core.database.engine import init_db
from bounty_rbac.core.exceptions import AccessControlError
from bounty_rbac.core.rate_limit import limiter
from bounty_rbac.features.audit.routes import router as audit_router
from bounty_rbac.features.authorization.routes import router as authorization_router
from bounty_rbac.features.organizations.routes import router as organization_router
from bounty_rbac.features.permissions.routes import router as permission_router
from bounty_rbac.features.principals.routes import router as principal_router
from bounty_rbac.features.roles.routes import router as role_router
from bounty_rbac.utils import get_logger


log = get_logger(__name__)

# Feature routers and their mount points
ROUTERS = (
    (permission_router, "/permissions"),
    (role_router, "/roles"),
    (principal_router, "/principals"),
    (authorization_router, "/authorization"),
    (organization_router, "/organizations"),
    (audit_router, "/audit-logs"),
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    log.info("Creating tables if missing...")
    await init_db()
    log.info("Database ready")
    yield


log.info("Initializing bounty RBAC service")
app = FastAPI(
    title="Bounty RBAC",
    description="Permission and role registry for the bug bounty platform",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None,
)
app.state.limiter = limiter


class PrintTimings(TimingClient):
    """Log per-route latency at DEBUG."""

    def timing(self, metric_name, timing, tags):
        route = metric_name.removeprefix("rbac.bounty_rbac.features.")
        log.debug(dict(route=route, timing=round(timing, 4), tags=tags))


app.add_middleware(
    TimingMiddleware,
    client=PrintTimings(),
    metric_namer=StarletteScopeToName("rbac", app),
)

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("CORS allowed for %s", config.ALLOW_ORIGIN)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.ALLOW_ORIGIN],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    fields = {}
    for error in exc.errors():
        if not error.get("loc") or "msg" not in error:
            continue
        field = str(error["loc"][-1])
        fields[field] = error["msg"]
    log.info("Rejected request body: %s", fields)
    payload = {"error": "ValidationError", "message": "Invalid request", "fields": fields}
    return JSONResponse(status_code=400, content=jsonable_encoder(payload))


@app.exception_handler(AccessControlError)
async def access_control_exception_handler(_request: Request, exc: AccessControlError):
    log.info("%s (%s): %s", exc.kind, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.kind, "message": exc.message})


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "RateLimitExceeded", "message": "You are going too fast"}, status_code=429)


@app.get("/")
async def root():
    """Service banner listing the mounted feature routes."""
    return {
        "message": "Bounty RBAC API",
        "version": app.version,
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "auth": "Bearer token in the Authorization header on every feature route",
        "routes": [prefix for _, prefix in ROUTERS],
    }


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "healthy"}


for router, prefix in ROUTERS:
    app.include_router(router, prefix=prefix)

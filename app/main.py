import asyncio
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from app.core import config
from app.core.database.engine import AsyncSessionLocal, init_db
from app.core.errors import AccessError
from app.core.responses import access_error_response, error_response
from app.features.access.guard import RouteRedirect
from app.features.access.routes import router as access_router
from app.features.flags.routes import admin_router as flag_admin_router
from app.features.flags.routes import router as flag_router
from app.features.organizations.routes import catalog_router
from app.features.organizations.routes import router as organization_router
from app.features.seats.routes import router as seat_router
from app.features.seats.sweep import run_periodic_sweep
from app.features.users.dependencies import get_authorization_header
from app.features.users.routes import router as user_router
from app.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="Residential Access Core",
    description="Authorization core for multi-tenant residential access control",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
limiter = Limiter(key_func=get_authorization_header)
app.state.limiter = limiter
sweep_task: Optional[asyncio.Task] = None


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.app.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(AccessError)
async def access_error_handler(request: Request, exc: AccessError):
    if exc.status_code >= 500:
        log.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        log.info(f"{request.method} {request.url.path} denied: {type(exc).__name__}: {exc.message}")
    return access_error_response(exc)


@app.exception_handler(RouteRedirect)
async def route_redirect_handler(_request: Request, exc: RouteRedirect):
    return RedirectResponse(exc.verdict.redirect_to, status_code=307)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[str(key)] = error["msg"]
    log.info("Request validation error %s", errors)
    message = "; ".join(f"{key}: {msg}" for key, msg in errors.items()) or "Invalid input."
    return error_response(400, message)


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return error_response(429, "You are going too fast")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": True, "data": None, "message": "An unexpected error occurred."},
    )


@app.on_event("startup")
async def startup():
    """Initialize database and start the freeze sweep."""
    global sweep_task
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")
    if config.FREEZE_SWEEP_INTERVAL_SECONDS > 0:
        sweep_task = asyncio.create_task(
            run_periodic_sweep(AsyncSessionLocal, config.FREEZE_SWEEP_INTERVAL_SECONDS)
        )


@app.on_event("shutdown")
async def shutdown():
    if sweep_task is not None:
        sweep_task.cancel()


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "Residential Access Core API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "Protected endpoints require Bearer token in Authorization header",
            "protected_endpoints": [
                "/users/me", "/user/flags", "/organizations/*", "/admin/*"
            ],
            "public_endpoints": ["/organization-types", "/organization-roles"]
        },
        "features": {
            "organizations": "Organization membership with per-role permissions",
            "access": "Route guard that resolves page access to allow or redirect",
            "seats": "Seat capacity with package-based limits and freeze on overflow",
            "flags": "Per-user feature flags that fail open",
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(user_router, prefix="/users", tags=["users"])
app.include_router(flag_router, prefix="/user", tags=["flags"])
app.include_router(flag_admin_router, prefix="/admin", tags=["admin"])
app.include_router(catalog_router)

# Organization routes
app.include_router(organization_router, prefix="/organizations", tags=["organizations"])
app.include_router(access_router, prefix="/organizations", tags=["access"])
app.include_router(seat_router, prefix="/organizations", tags=["seats"])

"""
FastAPI app assembly: logging, middleware, error mapping and router wiring.
"""
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from orgspace import __version__
from orgspace.api.orgs import invitations_router, router as orgs_router
from orgspace.errors import OrganizationError

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="Organizations Service",
    description="Self-service organizations, memberships, teams and invitations.",
    version=__version__,
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

origins = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost,http://localhost:3000,http://localhost:8000").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OrganizationError)
async def organization_error_handler(request: Request, exc: OrganizationError):
    if exc.http_status >= 500:
        logger.error("organization_error: path=%s code=%s", request.url.path, exc.code)
    else:
        logger.info(
            "organization_request_rejected: path=%s code=%s kind=%s", request.url.path, exc.code, exc.kind
        )
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


app.include_router(orgs_router)
app.include_router(invitations_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "orgspace"}

"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from anamnesis.config import get_settings
from anamnesis.routers import templates, sections, fields, anamneses, public
from anamnesis.schemas.envelope import fail

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

app = FastAPI(
    title="Anamnesis Form Engine",
    description="Dynamic intake questionnaire templates with a public multi-step filling flow",
    version="1.0.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap HTTP errors in the failure envelope, keeping the status code."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=fail(str(exc.detail)))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Wrap body/query validation errors in the failure envelope."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    content = fail("; ".join(messages) or "Invalid request")
    return JSONResponse(status_code=422, content=content)


# Include routers
app.include_router(templates.router, prefix=f"{API_PREFIX}/templates", tags=["Templates"])
app.include_router(sections.router, prefix=f"{API_PREFIX}/sections", tags=["Sections"])
app.include_router(fields.router, prefix=f"{API_PREFIX}/fields", tags=["Fields"])
app.include_router(anamneses.router, prefix=f"{API_PREFIX}/anamneses", tags=["Anamneses"])
app.include_router(public.router, prefix=f"{API_PREFIX}/public/anamnesis", tags=["Public Filling"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "anamnesis-backend"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Anamnesis Form Engine API",
        "docs": "/docs",
        "health": "/health",
    }

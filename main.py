import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.exceptions import BaseAppException
from app.core.logging_config import setup_logging
from app.middleware.logging import LoggingMiddleware
from app.api.v1.api import api_router

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"🚀 Stocktake count pipeline starting ({settings.ENVIRONMENT})")
    yield
    logger.info("🛑 Stocktake count pipeline shutting down")

# Create FastAPI app
app_config = {
    "title": "Stocktake Count Pipeline",
    "description": "Count capture, unit normalization, aggregation and recount assignment",
    "version": "1.0.0",
    "lifespan": lifespan,
    "debug": settings.DEBUG,
}

app = FastAPI(**app_config)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.ALLOWED_METHODS,
    allow_headers=settings.ALLOWED_HEADERS,
)
app.add_middleware(LoggingMiddleware)

@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.detail, "code": exc.code},
        headers=exc.headers,
    )

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    message = f"{field}: {first.get('msg', 'invalid')}" if field else first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"ok": False, "error": message, "code": "validation"})

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"💥 Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": "Internal server error", "code": "internal"},
    )

# Include routers
app.include_router(api_router, prefix="/api/v1")

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
    }

def run_http():
    """Run HTTP server on port 9106"""
    import uvicorn
    print("🚀 Starting HTTP server on port 9106...")
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=9106,
        reload=False
    )

if __name__ == "__main__":
    run_http()

"""
Advance Appointment Service - Main Application

Tekmetric API proxy for the advance appointment panel.
Exchanges OAuth client credentials for a cached bearer token and
forwards repair order, customer, vehicle, job and appointment calls.
"""

from contextlib import asynccontextmanager
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import os
import logging

load_dotenv()

from app.routers import repair_orders, appointments, customers, jobs
from app.scheduler import start_scheduler, stop_scheduler
from app.services.tm_client import (
    TekmetricAPIError,
    TekmetricAuthError,
    TekmetricConfigError,
    get_tm_client,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    logger.info("Starting Advance Appointment service...")
    missing = get_tm_client().missing_settings()
    if missing:
        logger.error(f"Missing required Tekmetric environment variables: {', '.join(missing)}")
    else:
        start_scheduler()
    yield
    # Shutdown
    logger.info("Shutting down Advance Appointment service...")
    stop_scheduler()


# Initialize FastAPI app
app = FastAPI(
    title="Advance Appointment Service",
    description="Tekmetric API proxy for advance appointment scheduling",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware (comma-separated origins, "*" by default)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(repair_orders.router, prefix="/ro", tags=["Repair Orders"])
app.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
app.include_router(customers.router, prefix="/customers", tags=["Customers"])
app.include_router(customers.vehicle_router, prefix="/vehicles", tags=["Vehicles"])
app.include_router(jobs.router, prefix="/jobs", tags=["Jobs"])


def _error(status_code: int, message) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": str(message)})


@app.exception_handler(TekmetricConfigError)
async def config_error_handler(request: Request, exc: TekmetricConfigError):
    logger.error(f"[Config] {exc}")
    return _error(503, exc)


@app.exception_handler(TekmetricAuthError)
async def auth_error_handler(request: Request, exc: TekmetricAuthError):
    logger.error(f"[TM Client] {exc}")
    return _error(502, exc)


@app.exception_handler(TekmetricAPIError)
async def api_error_handler(request: Request, exc: TekmetricAPIError):
    return _error(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(part) for part in err.get("loc", ())) for err in exc.errors())
    return _error(422, f"Invalid request: {fields}" if fields else "Invalid request")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"[Server] Unhandled error on {request.method} {request.url.path}")
    return _error(500, "Internal server error")


@app.get("/")
def read_root():
    """Health check endpoint"""
    return {"status": "Advance Appointment service running"}


@app.get("/health")
def health_check():
    """Detailed health check"""
    tm = get_tm_client()
    return {
        "status": "healthy" if tm.is_configured() else "misconfigured",
        "tekmetric_base_url": tm.base_url or None,
        "auth_configured": tm.is_configured(),
        "token_cached": tm.token_cache.get() is not None
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8080)), reload=True)

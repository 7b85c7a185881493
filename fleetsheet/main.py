"""
Main Application Module

This module builds the FastAPI application: routers, middleware and
error handlers.

Features:
- Router mounting under /api
- CORS configuration
- Request logging
- Structured error bodies
- Development server

Data Model:
- Error body: {"message": str, "code": str}

Security:
- CORS origins from config
- Bearer auth enforced per router

Dependencies:
- FastAPI for the API
- uvicorn for the development server
- pymongo for driver errors
- logging

Author: Fleetsheet Development Team
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from fleetsheet.shared.config import CORS_ORIGINS, LOG_LEVEL
from fleetsheet.shared.database import lifespan
from fleetsheet.shared.errors import FleetsheetError, PersistenceError, ValidationError

from fleetsheet.features.reports import router as reports_router
from fleetsheet.features.timesheet import router as timesheet_router
from fleetsheet.features.vehicles import router as vehicles_router

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Fleetsheet API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*", "Authorization"],
    expose_headers=["Content-Disposition"],
)

app.include_router(timesheet_router, prefix="/api")
app.include_router(vehicles_router, prefix="/api")
app.include_router(reports_router, prefix="/api")


# --- Error Handlers ---

@app.exception_handler(FleetsheetError)
async def fleetsheet_error_handler(request: Request, exc: FleetsheetError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    error = ValidationError("; ".join(details) or "invalid request")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(PyMongoError)
async def persistence_error_handler(request: Request, exc: PyMongoError):
    logger.exception(f"Database error on {request.method} {request.url.path}: {exc}")
    error = PersistenceError("database operation failed")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """
    Log each request line and its response status.

    Notes:
        - Unhandled errors are logged and returned as a 500 error body
    """
    logger.info(f"Incoming request: {request.method} {request.url.path}")
    try:
        response = await call_next(request)
        logger.info(f"Response status: {response.status_code}")
        return response
    except Exception as e:
        logger.exception(f"Request failed: {str(e)}")
        return JSONResponse(
            status_code=500,
            content={"message": "internal server error", "code": "internal_error"}
        )


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "fleetsheet.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=LOG_LEVEL.lower()
    )

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from datetime import datetime
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from campus_support.config import get_settings
from campus_support.errors import SupportError
from campus_support.logger import logger

### ROUTERS
from campus_support.routers.admin import router as admin_router, limiter
from campus_support.routers.notifications import router as notification_router
from campus_support.routers.profiles import router as profile_router
from campus_support.routers.providers import router as provider_router
from campus_support.routers.students import router as student_router


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging all HTTP requests and responses.

    Logs request method, URL, response status, and timing information.
    Handles errors by logging exceptions.
    """
    async def dispatch(self, request: Request, call_next):
        # Log request
        start_time = datetime.now()
        logger.info(f"Request: {request.method} {request.url}")

        try:
            response = await call_next(request)
            # Log response
            duration = (datetime.now() - start_time).total_seconds()
            logger.info(f"Response: {response.status_code} - Duration: {duration:.3f}s")
            return response
        except Exception as e:
            # Log error
            logger.error(f"Error processing request: {str(e)}")
            raise

app = FastAPI(
    title=get_settings().app_name,
    version=get_settings().app_version,
    openapi_url="/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Rate limiting for the admin reporting endpoints
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add logging middleware
app.add_middleware(LoggingMiddleware)

# Every role's front-end is served from its own page
app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'], # Allow all origins for now
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
    max_age=3600
)

@app.exception_handler(SupportError)
async def support_error_handler(request: Request, exc: SupportError):
    """Answer core errors with their status code and message."""
    logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "error": type(exc).__name__})

# Include routers
app.include_router(admin_router, tags=['admin'])
app.include_router(notification_router, tags=['notifications'])
app.include_router(profile_router, tags=['profiles'])
app.include_router(provider_router, tags=['providers'])
app.include_router(student_router, tags=['students'])

@app.get("/")
def read_root():
    """
    Root endpoint returning API welcome message.

    Returns:
    - dict: Welcome message
    """
    return {"message": f"Welcome to the {get_settings().app_name} API"}

@app.on_event("startup")
async def startup_event():
    """
    Application startup handler.
    Logs startup and the configured store backend.
    """
    logger.info(f"Server starting up with the {get_settings().store_backend} store...")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Server shutting down...")

def run():
    import uvicorn
    uvicorn.run(app, host=get_settings().app_host, port=get_settings().app_port)

if __name__ == '__main__':
    run()

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from dotenv import load_dotenv
import logging

# Load environment variables as early as possible
load_dotenv()

from .core.config import settings
from .database import create_db_and_tables
from .exceptions import CareConnectError, domain_exception_handler, http_exception_handler
from .jobs.scheduler import get_scheduler
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware, SecurityMiddleware
from .routers import appointments_router, health_router, notifications_router, schedules_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting CareConnect Scheduling API...")
    app.state.db_init_ok = True
    app.state.db_init_error = None
    app.state.scheduler = None
    try:
        create_db_and_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        # Do not crash the app; report via health endpoint
        app.state.db_init_ok = False
        app.state.db_init_error = str(e)
        logger.exception("Database initialization failed")

    if settings.SCHEDULER_ENABLED and app.state.db_init_ok:
        scheduler = get_scheduler()
        scheduler.start()
        app.state.scheduler = scheduler
    yield
    # Shutdown
    logger.info("Shutting down CareConnect Scheduling API...")
    if app.state.scheduler is not None:
        app.state.scheduler.stop()


# Initialize FastAPI
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

# Add custom exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(CareConnectError, domain_exception_handler)

# Add middleware
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router.router)
app.include_router(schedules_router.router)
app.include_router(appointments_router.router)
app.include_router(notifications_router.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("careconnect.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)

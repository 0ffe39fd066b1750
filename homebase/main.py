import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import all models so every table is registered with Base before create_all
from . import (
    models,  # noqa: F401
    models_partner,  # noqa: F401
    models_workflow,  # noqa: F401
)
from .config import CORS_ORIGINS
from .database import Base, engine
from .domain.partners.router import router as partners_router
from .domain.workflow.router import router as workflows_router
from .routes.bookings import router as bookings_router
from .routes.invoices import router as invoices_router
from .routes.milestones import router as milestones_router
from .routes.notifications import router as notifications_router
from .routes.partner_webhooks import router as partner_webhooks_router
from .routes.quotes import router as quotes_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("stripe").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Another worker may have created the tables first
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        if get_redis_client() is not None:
            logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - rate limiting will run from memory only: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="HomeBase API", version="1.0.0", lifespan=lifespan)


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances that are not JSON serializable
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(workflows_router)
app.include_router(bookings_router)
app.include_router(quotes_router)
app.include_router(invoices_router)
app.include_router(milestones_router)
app.include_router(notifications_router)
app.include_router(partners_router)
app.include_router(partner_webhooks_router)


@app.get("/")
def root():
    return {"message": "HomeBase API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}

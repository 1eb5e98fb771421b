import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.errors import (
    ConsistencyViolation,
    PaymentNotFoundError,
    PaymentValidationError,
    StoreError,
)
from app.core.logging_config import configure_logging
from app.db.session import close_store, init_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_store()
    logger.info("Ledger store ready (%s backend)", settings.STORE_BACKEND)
    yield
    await close_store()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan
)

# Allow all CORS for now
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PaymentNotFoundError)
async def payment_not_found_handler(request: Request, exc: PaymentNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PaymentValidationError)
async def payment_validation_handler(request: Request, exc: PaymentValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConsistencyViolation)
async def consistency_handler(request: Request, exc: ConsistencyViolation):
    logger.error("Ledger consistency violation on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal ledger error"})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.warning("Store failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


@app.get("/")
async def root():
    return {"message": "Welcome to Tally API"}

app.include_router(api_router, prefix=settings.API_V1_STR)

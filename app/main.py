from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from app.database.database import sync_engine, Base

# Import middleware
from app.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

# Import routers
from app.modules.contacts.router import router as contacts_router
from app.modules.invoices.router import router as invoices_router
from app.modules.payments.router import router as payments_router
from app.modules.notes.router import router as notes_router
from app.modules.statements.router import router as statements_router

# Import models for table creation
import app.modules.contacts.models
import app.modules.invoices.models
import app.modules.payments.models
import app.modules.notes.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Flora Ledger API",
    description="Facturación de exportación de flores: cuentas por cobrar y por pagar, pagos y estados de cuenta",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(contacts_router)
app.include_router(invoices_router)
app.include_router(payments_router)
app.include_router(notes_router)
app.include_router(statements_router)

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=sync_engine)


@app.get("/")
async def read_root():
    return {
        "message": "Flora Ledger API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Flora Ledger API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Payment terms: {settings.PAYMENT_TERMS_DAYS} days, paid tolerance {settings.PAID_TOLERANCE}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Flora Ledger API shutting down...")

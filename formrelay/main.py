"""Main FastAPI application"""
from fastapi import FastAPI
from formrelay.config import get_settings
from formrelay.middleware.cors import setup_cors
from formrelay.middleware.error_handler import ErrorHandlerMiddleware
from contextlib import asynccontextmanager
import httpx
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup: one outbound client shared by all submissions
    settings = get_settings()
    app.state.http_client = httpx.AsyncClient(timeout=settings.outbound_timeout)
    logger.info("Outbound HTTP client started")
    yield
    # Shutdown
    await app.state.http_client.aclose()
    logger.info("Outbound HTTP client closed")


# Create FastAPI app with lifespan
app = FastAPI(
    title="FormRelay API",
    description="Form submission pipeline for CMS-defined forms",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Setup CORS
setup_cors(app)

# Add error handling middleware
app.add_middleware(ErrorHandlerMiddleware)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "formrelay"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "FormRelay API",
        "version": "1.0.0",
        "docs": "/docs"
    }

# Import and include routers
from formrelay.routers import forms

app.include_router(forms.router, prefix="/api/forms", tags=["Forms"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

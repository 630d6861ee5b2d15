"""CORS middleware configuration"""
from fastapi.middleware.cors import CORSMiddleware
from formrelay.config import get_settings

settings = get_settings()


def setup_cors(app):
    """
    Configure CORS middleware for the application

    Forms are embedded on other sites, so submissions are cross-origin
    POSTs; preflight requests are answered here.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

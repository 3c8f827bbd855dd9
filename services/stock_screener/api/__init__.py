"""API routes"""

from .routes import router as stocks_router

__all__ = ["stocks_router"]

"""
API Endpoints Package
"""

from .health import router as health_router
from .test_runs import router as test_runs_router

__all__ = ["health_router", "test_runs_router"]

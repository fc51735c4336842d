"""
API Package

HTTP surface of the eval engine.
"""

from .factory import create_api
from .router import router

__all__ = ["router", "create_api"]

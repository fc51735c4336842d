"""
V1 API Response Schemas
"""

from .health_response import HealthResponse

__all__ = ["HealthResponse"]

"""
V1 API Request Schemas
"""

from .test_run_requests import RunRequest

__all__ = ["RunRequest"]

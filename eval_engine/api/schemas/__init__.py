"""
API Schemas

Shared API response models.
"""

from .error import ErrorDetail, ErrorResponse

__all__ = ["ErrorResponse", "ErrorDetail"]

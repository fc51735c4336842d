"""
API Converters

Translate API request models into service-layer parameters.
"""

from .test_run_converters import convert_run_request

__all__ = ["convert_run_request"]

"""
API Error Response Schemas

Standardized error envelope returned by every failing endpoint.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    type: str = Field(..., description="Exception type", examples=["ValidationException"])
    message: str = Field(..., description="Human-readable error message")
    code: Optional[str] = Field(
        None,
        description="Machine-readable error code",
        examples=["VALIDATION_EMPTY_SELECTION"],
    )
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    debug: Optional[Dict[str, Any]] = Field(
        None, description="Debug information (only in debug mode)"
    )


class ErrorResponse(BaseModel):
    """Standard error response format."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "error": {
                        "type": "ValidationException",
                        "message": "No enabled test cases to run",
                        "code": "VALIDATION_EMPTY_SELECTION",
                        "details": {},
                    },
                    "request_id": "8d0f2c1e-6a35-4c8e-9b1b-2f0d3c4e5a6b",
                    "path": "/api/v1/test-runs",
                    "method": "POST",
                }
            ]
        },
    )

    error: ErrorDetail = Field(..., description="Error details")
    request_id: Optional[str] = Field(None, description="Request ID for tracing")
    path: Optional[str] = Field(None, description="Request path")
    method: Optional[str] = Field(None, description="HTTP method")

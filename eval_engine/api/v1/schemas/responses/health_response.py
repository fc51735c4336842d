"""
Health Check Response Schemas
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response model for API health check endpoint."""

    status: str = Field(..., description="Overall health status", examples=["healthy"])
    timestamp: str = Field(..., description="Health check timestamp (ISO format)")
    version: str = Field(..., description="API version")
    environment: str = Field(..., description="Environment name")
    components: Dict[str, Any] = Field(
        ..., description="Health status of individual components"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00.000Z",
                "version": "1.0.0",
                "environment": "development",
                "components": {
                    "api": {"status": "healthy", "version": "1.0.0"},
                    "providers": {
                        "status": "healthy",
                        "configured": ["openai", "anthropic"],
                    },
                },
            }
        }
    )

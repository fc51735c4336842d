"""
Base Models

Shared pydantic configuration for eval-engine data models.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class EngineModel(BaseModel):
    """Base model accepting both snake_case and camelCase keys.

    Serialized with camelCase aliases so API payloads keep the field names
    used by existing clients.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )

    def to_payload(self) -> dict:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = ["EngineModel"]

"""
servicewala/core/schemas.py

Core Schemas

Defines core Pydantic models used across the application, including:
- Base schema with camelCase JSON aliases.
- Generic message response schema.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base schema for view models: snake_case attributes, camelCase JSON.
    Both spellings are accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(BaseModel):
    """
    Generic response schema for simple success or informational messages.
    """

    detail: str = Field(..., description="Response message detail")

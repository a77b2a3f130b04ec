"""
Common response schemas - camelCase wire models and the error envelope
"""

from typing import Optional, Any
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: camelCase on the wire, snake_case or camelCase accepted on input"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """Error envelope returned by the exception handlers"""
    success: bool = False
    error: str
    code: str
    details: Optional[Any] = None


class MessageResponse(CamelModel):
    """Plain message response"""
    message: str

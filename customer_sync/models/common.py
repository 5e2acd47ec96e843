"""
Common response models.

Dependencies: pydantic
System role: Common API response structures
"""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body produced by the error-handling decorator."""

    message: str = Field(description="Error message")
    details: dict | None = Field(default=None, description="Additional error context")

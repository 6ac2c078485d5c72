"""
Error response models.

Routes raise HTTPException(detail=error.to_dict()), so error bodies
have the shape {"detail": {"error": ..., "message": ..., "details": ...}}.
These models document that shape in the OpenAPI schema.
"""

from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Body produced by TutorLinkError.to_dict()."""

    error: str = Field(..., description="Machine-readable error code")
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response format."""

    detail: ErrorDetail

"""API models package."""

from .user import TokenPayload
from .errors import ErrorDetail, ErrorResponse

__all__ = [
    "TokenPayload",
    "ErrorDetail",
    "ErrorResponse",
]

"""
Token models for authentication.

The authenticated user model itself is shared across modules and lives
in shared.models.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class TokenPayload(BaseModel):
    """Supabase JWT claims the API relies on."""

    model_config = ConfigDict(extra="ignore")

    sub: str  # User ID
    email: str
    email_confirmed_at: Optional[str] = None
    aud: str  # Audience
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp
    role: Optional[str] = None

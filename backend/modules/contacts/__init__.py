"""
Contacts module.

Gates a requester's contact details behind a paid unlock.

Public API:
- IContactGate: Interface for the contact gate
- ContactGateService: Default implementation
- RequestView, UnlockResult: Response models
- ViewerRequiredError
"""

from .interfaces import IContactGate
from .service import ContactGateService
from .models import REDACTED_PLACEHOLDER, RequestView, UnlockResult
from .exceptions import ViewerRequiredError

__all__ = [
    # Interface
    "IContactGate",
    # Implementation
    "ContactGateService",
    # Models
    "REDACTED_PLACEHOLDER",
    "RequestView",
    "UnlockResult",
    # Exceptions
    "ViewerRequiredError",
]

"""
Requests module.

Read access to tutoring requests posted by students.

Public API:
- IRequestRepository: Interface for request lookup
- TutoringRequest, ContactDetails, Urgency: Request models
- RequestNotFoundError
"""

from .interfaces import IRequestRepository
from .models import ContactDetails, TutoringRequest, Urgency
from .exceptions import RequestNotFoundError

__all__ = [
    # Interface
    "IRequestRepository",
    # Models
    "ContactDetails",
    "TutoringRequest",
    "Urgency",
    # Exceptions
    "RequestNotFoundError",
]

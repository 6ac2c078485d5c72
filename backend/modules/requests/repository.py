"""
Request repository for database access.

Encapsulates the Supabase queries for tutoring requests:
- requests (with the requester from users and subjects via request_subjects)
- increment_view_count RPC

An in-memory implementation with the same interface is provided for tests
and for running the API without a database.
"""

import threading
from typing import Any, Optional

from shared.exceptions import StoreRejectedError
from shared.repository import BaseRepository
from .models import ContactDetails, TutoringRequest


REQUEST_SELECT = (
    "*, "
    "user:users(name, email, phone_number, phone_verified), "
    "subjects:request_subjects(subject:subjects(name))"
)


class RequestRepository(BaseRepository[TutoringRequest]):
    """
    Supabase-backed request lookup.

    Note: This repository always loads contact fields. Redaction is the
    contact gate's job, which keeps the authorization decision in one place.
    """

    def get_request(self, request_id: str) -> Optional[TutoringRequest]:
        """
        Get a request by ID with subjects and requester contact fields.

        Args:
            request_id: The request ID.

        Returns:
            TutoringRequest, or None if not found. An ID the database
            cannot parse (not a UUID) names no request, so it is also None.
        """
        try:
            result = self._execute(
                self._db.table("requests").select(REQUEST_SELECT).eq("id", request_id),
                "get_request",
            )
        except StoreRejectedError as e:
            if e.is_invalid_input:
                return None
            raise

        if not result.data:
            return None

        return self._map_to_request(result.data[0])

    def increment_view_count(self, request_id: str) -> int:
        """
        Atomically increment the request's view counter.

        Args:
            request_id: The request ID.

        Returns:
            The new view count (0 if the request does not exist).
        """
        try:
            result = self._execute(
                self._db.rpc("increment_view_count", {"p_request_id": request_id}),
                "increment_view_count",
            )
        except StoreRejectedError as e:
            if e.is_invalid_input:
                return 0
            raise
        return int(result.data or 0)

    def _map_to_request(self, data: dict[str, Any]) -> TutoringRequest:
        """Map database row (with joined user and subjects) to TutoringRequest."""
        user = data.get("user") or {}

        return TutoringRequest(
            id=str(data["id"]),
            title=data.get("title"),
            description=data.get("description"),
            level=data.get("level"),
            status=data.get("status") or "open",
            urgency=data.get("urgency"),
            price_amount=data.get("price_amount"),
            price_currency=data.get("price_currency"),
            subjects=data.get("subjects") or [],
            view_count=data.get("view_count"),
            contacted_count=data.get("contacted_count"),
            created_at=data.get("created_at"),
            contact=ContactDetails(
                name=user.get("name") or "Student",
                email=user.get("email"),
                phone=user.get("phone_number"),
                phone_verified=bool(user.get("phone_verified")),
            ),
        )


class InMemoryRequestRepository:
    """
    Request repository with in-memory storage.

    For testing and development. Use RequestRepository for production.
    """

    def __init__(self, requests: Optional[list[TutoringRequest]] = None):
        self._requests: dict[str, TutoringRequest] = {r.id: r for r in requests or []}
        self._lock = threading.Lock()

    def add(self, request: TutoringRequest) -> None:
        """Store or replace a request."""
        with self._lock:
            self._requests[request.id] = request

    def get_request(self, request_id: str) -> Optional[TutoringRequest]:
        """Get a request by ID."""
        return self._requests.get(request_id)

    def increment_view_count(self, request_id: str) -> int:
        """Increment the request's view counter."""
        with self._lock:
            request = self._requests.get(request_id)
            if request is None:
                return 0
            updated = request.model_copy(update={"view_count": request.view_count + 1})
            self._requests[request_id] = updated
            return updated.view_count

"""
Base repository class for database access.

Provides a common abstraction layer for all repositories, encapsulating
Supabase client access and translating PostgREST and httpx failures into
StoreUnavailableError (transient) or StoreRejectedError (permanent) so
services never see PostgREST or httpx types.
"""

import logging
from typing import Any, TypeVar, Generic

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from .exceptions import StoreRejectedError, StoreUnavailableError


T = TypeVar("T")

# SQLSTATE classes meaning the request itself is bad: data exceptions,
# integrity violations and RAISE EXCEPTION in PL/pgSQL functions.
REJECTED_SQLSTATE_CLASSES = ("22", "23", "P0")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints
    - _execute() for running a query with uniform error translation

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class RequestRepository(BaseRepository[TutoringRequest]):
            def get_request(self, request_id: str) -> Optional[TutoringRequest]:
                result = self._execute(
                    self._db.table("requests").select("*").eq("id", request_id),
                    "get_request",
                )
                if not result.data:
                    return None
                return self._map_to_request(result.data[0])
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db

    def _execute(self, query: Any, operation: str) -> Any:
        """
        Execute a PostgREST query builder.

        Args:
            query: Query builder (table query or rpc call) to execute.
            operation: Short name of the operation, used in errors and logs.

        Returns:
            The PostgREST response.

        Raises:
            StoreRejectedError: If the database refused the query itself
                (SQLSTATE class 22, 23 or P0). Retrying cannot help.
            StoreUnavailableError: If the request fails at the transport
                level or PostgREST returns any other error.
        """
        try:
            return query.execute()
        except APIError as e:
            code = str(e.code or "")
            if code.startswith(REJECTED_SQLSTATE_CLASSES):
                logger.warning(f"Supabase rejected {operation} ({code}): {e.message}")
                raise StoreRejectedError(operation, e.message or "rejected", code)
            logger.error(f"Supabase error during {operation}: {e.message}")
            raise StoreUnavailableError(operation, e.message or "api error")
        except httpx.HTTPError as e:
            logger.error(f"Supabase transport error during {operation}: {e}")
            raise StoreUnavailableError(operation, str(e))

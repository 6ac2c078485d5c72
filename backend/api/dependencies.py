"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

The ledger and request storage follow settings.ledger_backend: "supabase"
for deployments, "memory" for local runs without a database. The memory
backend starts from settings.memory_seed_path, or empty when unset.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from shared.config import Settings
    from modules.billing.interfaces import IBillingService, ICoinLedger, ISettlementService
    from modules.billing.razorpay_gateway import RazorpayGateway
    from modules.billing.stripe_gateway import StripeGateway
    from modules.billing.webhooks import RazorpayWebhookHandler, StripeWebhookHandler
    from modules.contacts.interfaces import IContactGate
    from modules.pricing.interfaces import IPricingEngine
    from modules.requests.interfaces import IRequestRepository
    from .seed import MemorySeed

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Container for all service instances.

    Services are created lazily on first access and cached as singletons
    within the container. Use reset() to clear them for testing.
    """

    def __init__(self, settings: "Settings | None" = None) -> None:
        self._settings = settings
        self._seed: "MemorySeed | None" = None
        self._ledger: "ICoinLedger | None" = None
        self._billing_service: "IBillingService | None" = None
        self._settlement_service: "ISettlementService | None" = None
        self._stripe_gateway: "StripeGateway | None" = None
        self._webhook_handler: "StripeWebhookHandler | None" = None
        self._razorpay_gateway: "RazorpayGateway | None" = None
        self._razorpay_webhook_handler: "RazorpayWebhookHandler | None" = None
        self._request_repository: "IRequestRepository | None" = None
        self._pricing_engine: "IPricingEngine | None" = None
        self._contact_gate: "IContactGate | None" = None

    @property
    def settings(self) -> "Settings":
        """Get the settings the container was built with."""
        if self._settings is None:
            from shared.config import get_settings
            self._settings = get_settings()
        return self._settings

    @property
    def uses_memory_store(self) -> bool:
        return self.settings.ledger_backend == "memory"

    @property
    def memory_seed(self) -> "MemorySeed":
        """Get the seed data for the memory backend."""
        if self._seed is None:
            from .seed import MemorySeed, load_seed
            seed_path = self.settings.memory_seed_path
            if seed_path:
                self._seed = load_seed(Path(seed_path))
                logger.info(
                    f"Loaded {len(self._seed.users)} users and "
                    f"{len(self._seed.requests)} requests from {seed_path}"
                )
            else:
                logger.warning("Memory backend has no seed file; it starts empty")
                self._seed = MemorySeed()
        return self._seed

    @property
    def ledger(self) -> "ICoinLedger":
        """Get the coin ledger instance."""
        if self._ledger is None:
            if self.uses_memory_store:
                from modules.billing.ledger import InMemoryCoinLedger
                ledger = InMemoryCoinLedger()
                for user in self.memory_seed.users:
                    ledger.add_user(user.id, user.email, balance=user.balance)
                self._ledger = ledger
            else:
                from modules.billing.repository import SupabaseCoinLedger
                from shared.database import get_supabase_client
                self._ledger = SupabaseCoinLedger(get_supabase_client())
        return self._ledger

    @property
    def billing(self) -> "IBillingService":
        """Get the billing service instance."""
        if self._billing_service is None:
            from modules.billing.service import BillingService
            self._billing_service = BillingService(self.ledger)
        return self._billing_service

    @property
    def settlement(self) -> "ISettlementService":
        """Get the settlement service instance."""
        if self._settlement_service is None:
            from modules.billing.settlement import SettlementService
            self._settlement_service = SettlementService(self.ledger)
        return self._settlement_service

    @property
    def stripe_gateway(self) -> "StripeGateway":
        """Get the Stripe gateway instance."""
        if self._stripe_gateway is None:
            from modules.billing.stripe_gateway import StripeGateway
            settings = self.settings
            self._stripe_gateway = StripeGateway(
                secret_key=settings.stripe_secret_key,
                webhook_secret=settings.stripe_webhook_secret,
                frontend_url=settings.frontend_url,
                # Unsigned deliveries are only accepted for local debugging
                allow_unsigned_webhooks=settings.debug,
            )
        return self._stripe_gateway

    @property
    def webhook_handler(self) -> "StripeWebhookHandler":
        """Get the Stripe webhook handler instance."""
        if self._webhook_handler is None:
            from modules.billing.webhooks import StripeWebhookHandler
            self._webhook_handler = StripeWebhookHandler(
                gateway=self.stripe_gateway,
                settlement=self.settlement,
            )
        return self._webhook_handler

    @property
    def razorpay_gateway(self) -> "RazorpayGateway":
        """Get the Razorpay gateway instance."""
        if self._razorpay_gateway is None:
            from modules.billing.razorpay_gateway import RazorpayGateway
            settings = self.settings
            self._razorpay_gateway = RazorpayGateway(
                key_id=settings.razorpay_key_id,
                key_secret=settings.razorpay_key_secret,
                webhook_secret=settings.razorpay_webhook_secret,
                allow_unsigned_webhooks=settings.debug,
            )
        return self._razorpay_gateway

    @property
    def razorpay_webhook_handler(self) -> "RazorpayWebhookHandler":
        """Get the Razorpay webhook handler instance."""
        if self._razorpay_webhook_handler is None:
            from modules.billing.webhooks import RazorpayWebhookHandler
            self._razorpay_webhook_handler = RazorpayWebhookHandler(
                gateway=self.razorpay_gateway,
                settlement=self.settlement,
            )
        return self._razorpay_webhook_handler

    @property
    def request_repository(self) -> "IRequestRepository":
        """Get the request repository instance."""
        if self._request_repository is None:
            if self.uses_memory_store:
                from modules.requests.repository import InMemoryRequestRepository
                self._request_repository = InMemoryRequestRepository(self.memory_seed.requests)
            else:
                from modules.requests.repository import RequestRepository
                from shared.database import get_supabase_client
                self._request_repository = RequestRepository(get_supabase_client())
        return self._request_repository

    @property
    def pricing(self) -> "IPricingEngine":
        """Get the pricing engine instance."""
        if self._pricing_engine is None:
            from modules.pricing.engine import ContactPricingEngine
            self._pricing_engine = ContactPricingEngine()
        return self._pricing_engine

    @property
    def contacts(self) -> "IContactGate":
        """Get the contact gate instance."""
        if self._contact_gate is None:
            from modules.contacts.service import ContactGateService
            self._contact_gate = ContactGateService(
                requests=self.request_repository,
                pricing=self.pricing,
                billing=self.billing,
            )
        return self._contact_gate

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._seed = None
        self._ledger = None
        self._billing_service = None
        self._settlement_service = None
        self._stripe_gateway = None
        self._webhook_handler = None
        self._razorpay_gateway = None
        self._razorpay_webhook_handler = None
        self._request_repository = None
        self._pricing_engine = None
        self._contact_gate = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    The next call to get_container() creates a fresh container.
    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_billing_service() -> "IBillingService":
    """FastAPI dependency for billing service."""
    return get_container().billing


def get_settlement_service() -> "ISettlementService":
    """FastAPI dependency for settlement service."""
    return get_container().settlement


def get_stripe_gateway() -> "StripeGateway":
    """FastAPI dependency for the Stripe gateway."""
    return get_container().stripe_gateway


def get_stripe_webhook_handler() -> "StripeWebhookHandler":
    """FastAPI dependency for the Stripe webhook handler."""
    return get_container().webhook_handler


def get_razorpay_gateway() -> "RazorpayGateway":
    """FastAPI dependency for the Razorpay gateway."""
    return get_container().razorpay_gateway


def get_razorpay_webhook_handler() -> "RazorpayWebhookHandler":
    """FastAPI dependency for the Razorpay webhook handler."""
    return get_container().razorpay_webhook_handler


def get_request_repository() -> "IRequestRepository":
    """FastAPI dependency for request repository."""
    return get_container().request_repository


def get_contact_gate() -> "IContactGate":
    """FastAPI dependency for the contact gate."""
    return get_container().contacts

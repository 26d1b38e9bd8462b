"""
Billing provider protocol.

Checkout and webhook handling go through this interface so the
subscription logic does not depend on Stripe directly.
"""
from typing import Protocol, Dict, Any, Optional
from dataclasses import dataclass, field

from promofye.core.errors import BillingError, ValidationError


@dataclass
class BillingWebhookResult:
    """Normalized webhook event."""
    event_id: str
    event_type: str
    user_id: Optional[str] = None
    plan_id: Optional[str] = None
    subscription_id: Optional[str] = None
    customer_id: Optional[str] = None
    status: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class BillingProvider(Protocol):
    """
    Protocol for billing providers.

    Implementations must handle:
    - Customer creation
    - Subscription checkout session creation
    - Webhook signature verification and parsing
    """

    def ensure_customer(self, user_id: str, email: Optional[str] = None, name: Optional[str] = None) -> str:
        """
        Ensure a billing customer exists for the user.

        Returns:
            Provider customer ID

        Raises:
            BillingProviderError: If customer creation fails
        """
        ...

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Create a checkout session for a subscription.

        Returns:
            Checkout session URL
        """
        ...

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """
        Verify webhook signature and parse event.

        Raises:
            BillingWebhookError: If signature invalid or parsing fails
        """
        ...


class BillingProviderError(BillingError):
    """Provider call failed."""


class BillingWebhookError(ValidationError):
    """Webhook could not be verified or parsed."""
    code = "billing_webhook_invalid"

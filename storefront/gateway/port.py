"""Payment gateway port.

Hosted checkout is external: this core only creates a redirectable session,
reads it back, and verifies the signed events the gateway posts to us.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from storefront.domain.snapshot import SnapshotLine


@dataclass(frozen=True)
class GatewaySession:
    session_id: str
    url: str | None = None
    payment_status: str | None = None
    payment_intent: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayEvent:
    type: str
    object_id: str | None = None
    data: dict = field(default_factory=dict)


class PaymentGateway(ABC):
    @abstractmethod
    def create_checkout_session(
        self,
        lines: tuple[SnapshotLine, ...],
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> GatewaySession:
        """Create a hosted checkout session and return its redirect URL."""
        ...

    @abstractmethod
    def retrieve_session(self, session_id: str) -> GatewaySession:
        ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        """Verify the signature and parse the event; raises InvalidSignature."""
        ...

"""In-memory payment gateway for development and tests.

Sessions live in a dict; webhook payloads are signed with HMAC-SHA256 over
the raw body, header format ``v1=<hexdigest>``.
"""

import hashlib
import hmac
import json
from uuid import uuid4

from storefront.domain.errors import GatewaySessionNotFound, InvalidSignature
from storefront.domain.snapshot import SnapshotLine
from storefront.gateway.port import GatewayEvent, GatewaySession, PaymentGateway


class FakeGateway(PaymentGateway):
    def __init__(self, webhook_secret: str = "whsec_fake") -> None:
        self.webhook_secret = webhook_secret
        self.sessions: dict[str, GatewaySession] = {}
        self.lines: dict[str, tuple[SnapshotLine, ...]] = {}
        self.calls: list[dict] = []
        self.error: Exception | None = None

    def fail_with(self, error: Exception | None) -> None:
        """Make the next gateway calls raise ``error`` (None to reset)."""
        self.error = error

    def create_checkout_session(
        self,
        lines: tuple[SnapshotLine, ...],
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> GatewaySession:
        self.calls.append(
            {
                "method": "create_checkout_session",
                "lines": lines,
                "currency": currency,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": dict(metadata),
            }
        )
        if self.error is not None:
            raise self.error

        session_id = f"cs_test_{uuid4().hex[:16]}"
        session = GatewaySession(
            session_id=session_id,
            url=f"https://checkout.fake/pay/{session_id}",
            payment_status="unpaid",
            metadata=dict(metadata),
        )
        self.sessions[session_id] = session
        self.lines[session_id] = lines
        return session

    def complete(self, session_id: str, payment_status: str = "paid") -> GatewaySession:
        """Simulate the shopper paying on the hosted page."""
        current = self.sessions[session_id]
        session = GatewaySession(
            session_id=session_id,
            url=current.url,
            payment_status=payment_status,
            payment_intent=f"pi_fake_{uuid4().hex[:16]}" if payment_status == "paid" else None,
            metadata=current.metadata,
        )
        self.sessions[session_id] = session
        return session

    def retrieve_session(self, session_id: str) -> GatewaySession:
        self.calls.append({"method": "retrieve_session", "session_id": session_id})
        if self.error is not None:
            raise self.error
        if session_id not in self.sessions:
            raise GatewaySessionNotFound(f"No such checkout.session: {session_id}")
        return self.sessions[session_id]

    def sign(self, payload: bytes) -> str:
        digest = hmac.new(self.webhook_secret.encode(), payload, hashlib.sha256).hexdigest()
        return f"v1={digest}"

    def event_payload(self, session_id: str, event_type: str = "checkout.session.completed") -> bytes:
        session = self.sessions[session_id]
        return json.dumps(
            {
                "id": f"evt_{uuid4().hex[:12]}",
                "type": event_type,
                "data": {
                    "object": {
                        "id": session.session_id,
                        "payment_intent": session.payment_intent,
                        "metadata": session.metadata,
                    }
                },
            }
        ).encode()

    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        if not hmac.compare_digest(self.sign(payload), signature or ""):
            raise InvalidSignature()
        try:
            event = json.loads(payload)
            obj = event["data"]["object"]
            return GatewayEvent(type=event["type"], object_id=obj.get("id"), data=obj)
        except (ValueError, KeyError, TypeError) as e:
            raise InvalidSignature("Malformed webhook payload") from e

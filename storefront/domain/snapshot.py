# storefront/domain/snapshot.py
from __future__ import annotations

from dataclasses import asdict, dataclass

from storefront.domain.pricing import from_cents


@dataclass(frozen=True, slots=True)
class SnapshotLine:
    variant_id: str
    name: str
    unit_price_cents: int
    quantity: int
    image_url: str | None = None

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True, slots=True)
class CheckoutSnapshot:
    """Cart contents frozen at checkout time, prices in integer cents."""

    cart_id: int
    lines: tuple[SnapshotLine, ...]
    currency: str
    owner_user_id: str | None = None
    owner_guest_token: str | None = None

    @property
    def total_cents(self) -> int:
        # liczone z linii, nie z subtotalu koszyka
        return sum(line.line_total_cents for line in self.lines)

    def metadata(self) -> dict[str, str]:
        """Opaque metadata the payment confirmation is tied back with; gateway values must be strings."""
        return {
            "cartId": str(self.cart_id),
            "userId": self.owner_user_id or "",
            "guestToken": self.owner_guest_token or "",
            "totalAmount": str(from_cents(self.total_cents)),
            "totalCents": str(self.total_cents),
        }

    def lines_json(self) -> list[dict]:
        return [asdict(line) for line in self.lines]

    @staticmethod
    def lines_from_json(rows: list[dict]) -> tuple[SnapshotLine, ...]:
        return tuple(SnapshotLine(**row) for row in rows)

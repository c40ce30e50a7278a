from typing import Dict, Any
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from storefront.domain.errors import (
    CartConflict,
    CartNotFound,
    CommerceError,
    InsufficientStock,
    InvalidQuantity,
    ItemNotFound,
    VariantNotFound,
)
from storefront.domain.pricing import compute_totals
from storefront.repos.cart_repo import CartRepo
from storefront.services.product_client import ProductClient, VariantInfo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

class CartService:
    """
    Prosta implementacja cqrs dla domeny cart
    commands (add, update, remove, clear) modyfikuja stan, kazda w jednej transakcji
    query (get_cart) tylko odczyt, sumy zawsze liczone od nowa
    """

    def __init__(self, db: Session, product_client: ProductClient):
        self.repo = CartRepo(db)
        self.product_client = product_client

    #query - odczyt
    def get_cart(self, cart_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart(cart_id)
        if not cart:
            raise CartNotFound()

        items = []
        for item in self.repo.get_items(cart_id):
            try:
                variant = self.product_client.fetch_variant(item.variant_id)
            except VariantNotFound:
                # wariant zniknal z katalogu - nie pokazujemy i nie liczymy
                logger.warning(f"Cart {cart_id}: variant {item.variant_id} no longer in catalog")
                continue
            unit_price = variant.unit_price
            items.append(
                {
                    "id": item.id,
                    "variant_id": item.variant_id,
                    "name": variant.name,
                    "image": variant.image_url,
                    "quantity": item.quantity,
                    "unit_price": unit_price,
                    "line_total": unit_price * item.quantity,
                }
            )

        totals = compute_totals((i["unit_price"], i["quantity"]) for i in items)

        #dict przyksztalcany w jsona
        return {
            "id": cart.id,
            "user_id": cart.user_id,
            "guest_id": cart.guest_id,
            "items": items,
            "total_items": totals.total_items,
            "subtotal": totals.subtotal,
            "delivery_fee": totals.delivery_fee,
            "total": totals.total,
        }

    #commands
    def add_item(self, cart_id: int, variant_id: str, quantity: int = 1) -> Dict[str, Any]:
        if quantity <= 0:
            raise InvalidQuantity(quantity)

        logger.info(f"Pobieranie wariantu {variant_id} z product-service")
        variant = self.product_client.fetch_variant(variant_id)

        action = self._mutate(cart_id, lambda: self._upsert_item(cart_id, variant, quantity))

        logger.info(f"Wariant {variant_id} x{quantity} {action} w koszyku {cart_id}")
        return self._outcome(action, f"Added {quantity} x {variant.name} to cart", cart_id)

    def update_quantity(self, cart_id: int, item_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            return self.remove_item(cart_id, item_id)

        item = self.repo.get_item(cart_id, item_id)
        if item is None:
            raise ItemNotFound(item_id)

        variant = self.product_client.fetch_variant(item.variant_id)
        if variant.stock_level < quantity:
            raise InsufficientStock(variant.id, quantity, variant.stock_level)

        def _set():
            if self.repo.set_item_quantity(cart_id, item_id, quantity) == 0:
                raise ItemNotFound(item_id)

        self._mutate(cart_id, _set)

        logger.info(f"Pozycja {item_id} w koszyku {cart_id} ustawiona na {quantity}")
        return self._outcome("updated", f"Quantity of {variant.name} set to {quantity}", cart_id)

    def remove_item(self, cart_id: int, item_id: int) -> Dict[str, Any]:
        def _delete():
            if self.repo.delete_item(cart_id, item_id) == 0:
                raise ItemNotFound(item_id)

        self._mutate(cart_id, _delete)

        logger.info(f"Pozycja {item_id} usunieta z koszyka {cart_id}")
        return self._outcome("removed", "Item removed from cart", cart_id)

    def clear_cart(self, cart_id: int) -> Dict[str, Any]:
        removed = self._mutate(cart_id, lambda: self.repo.clear_items(cart_id))

        logger.info(f"Koszyk {cart_id} wyczyszczony ({removed} pozycji)")
        return self._outcome("cleared", "Cart cleared", cart_id)

    def _upsert_item(self, cart_id: int, variant: VariantInfo, quantity: int) -> str:
        """
        Atomowy increment z warunkiem na stan magazynu (update ... where quantity + n <= stock),
        a jak wiersza nie ma to insert; insert przegrany z rownoleglym addem wraca do incrementu.
        """
        for _ in range(2):
            if self.repo.increment_item(cart_id, variant.id, quantity, max_quantity=variant.stock_level):
                return "incremented"

            existing = self.repo.get_item_by_variant(cart_id, variant.id)
            if existing is not None:
                raise InsufficientStock(variant.id, existing.quantity + quantity, variant.stock_level)

            if quantity > variant.stock_level:
                raise InsufficientStock(variant.id, quantity, variant.stock_level)

            if self.repo.insert_item(cart_id, variant.id, quantity) is not None:
                return "added"

        raise CartConflict()

    def _mutate(self, cart_id: int, change):
        """Run one change in its own transaction; any failure rolls the cart back to its last state."""
        if not self.repo.get_cart(cart_id):
            raise CartNotFound()
        try:
            result = change()
            self.repo.commit()
        except CommerceError:
            self.repo.rollback()
            raise
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Blad bazy przy zmianie koszyka {cart_id}: {e}")
            raise CartConflict() from e
        return result

    def _outcome(self, action: str, message: str, cart_id: int) -> Dict[str, Any]:
        # zawsze swiezy odczyt po zapisie
        return {"action": action, "message": message, "cart": self.get_cart(cart_id)}

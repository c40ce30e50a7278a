# storefront/repos/cart_repo.py
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    """Cart and CartItem rows. Never commits on its own except via commit()."""

    def __init__(self, db: Session):
        self.db = db

    # koszyki

    def get_cart(self, cart_id: int) -> CartModel | None:
        return self.db.get(CartModel, cart_id)

    def find_by_user(self, user_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id, CartModel.guest_id.is_(None))
        ).scalar_one_or_none()

    def find_by_guest(self, guest_id: int, for_update: bool = False) -> CartModel | None:
        stmt = select(CartModel).where(CartModel.guest_id == guest_id, CartModel.user_id.is_(None))
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt.execution_options(populate_existing=True)).scalar_one_or_none()

    def insert_cart(self, cart: CartModel) -> CartModel | None:
        """Insert inside a savepoint; None when a unique owner constraint was hit."""
        try:
            with self.db.begin_nested():
                self.db.add(cart)
        except IntegrityError:
            return None
        return cart

    def delete_cart(self, cart_id: int) -> int:
        self.clear_items(cart_id)
        return self.db.execute(
            delete(CartModel).where(CartModel.id == cart_id).execution_options(synchronize_session=False)
        ).rowcount

    # pozycje

    def get_items(self, cart_id: int) -> list[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.id)
                .execution_options(populate_existing=True)
            ).scalars()
        )

    def get_item(self, cart_id: int, item_id: int) -> CartItemModel | None:
        # filtr po cart_id = kontrola wlasciciela
        return self.db.execute(
            select(CartItemModel)
            .where(CartItemModel.id == item_id, CartItemModel.cart_id == cart_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_item_by_variant(self, cart_id: int, variant_id: str) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel)
            .where(CartItemModel.cart_id == cart_id, CartItemModel.variant_id == variant_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def increment_item(self, cart_id: int, variant_id: str, quantity: int, max_quantity: int | None = None) -> int:
        """Atomic ``quantity = quantity + n``; with max_quantity the row is only touched if it stays within it."""
        stmt = (
            update(CartItemModel)
            .where(CartItemModel.cart_id == cart_id, CartItemModel.variant_id == variant_id)
            .values(quantity=CartItemModel.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if max_quantity is not None:
            stmt = stmt.where(CartItemModel.quantity + quantity <= max_quantity)
        return self.db.execute(stmt).rowcount

    def insert_item(self, cart_id: int, variant_id: str, quantity: int) -> CartItemModel | None:
        try:
            with self.db.begin_nested():
                item = CartItemModel(cart_id=cart_id, variant_id=variant_id, quantity=quantity)
                self.db.add(item)
        except IntegrityError:
            return None
        return item

    def set_item_quantity(self, cart_id: int, item_id: int, quantity: int) -> int:
        return self.db.execute(
            update(CartItemModel)
            .where(CartItemModel.id == item_id, CartItemModel.cart_id == cart_id)
            .values(quantity=quantity)
            .execution_options(synchronize_session=False)
        ).rowcount

    def move_item(self, item_id: int, from_cart_id: int, to_cart_id: int) -> int:
        return self.db.execute(
            update(CartItemModel)
            .where(CartItemModel.id == item_id, CartItemModel.cart_id == from_cart_id)
            .values(cart_id=to_cart_id)
            .execution_options(synchronize_session=False)
        ).rowcount

    def delete_item(self, cart_id: int, item_id: int) -> int:
        return self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.id == item_id, CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        ).rowcount

    def clear_items(self, cart_id: int) -> int:
        return self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        ).rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

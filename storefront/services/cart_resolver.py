# storefront/services/cart_resolver.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.guest import GuestModel
from storefront.domain.errors import CartConflict
from storefront.domain.identity import AuthenticatedUser, Guest, Identity, issue_guest_token
from storefront.repos.cart_repo import CartRepo
from storefront.repos.guest_repo import GuestRepo
from storefront.utils.settings import GUEST_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedCart:
    cart_id: int
    identity: AuthenticatedUser | Guest
    # nowy token goscia do zapisania w sesji klienta (cookie), jesli go wystawilismy
    issued_token: str | None = None


class CartResolver:
    """
    Mapuje tozsamosc na dokladnie jeden koszyk, tworzac go przy pierwszym uzyciu.
    Wyscig dwoch insertow rozstrzyga unikalnosc user_id / guest_id w bazie,
    przegrany czyta wiersz zwyciezcy.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.guests = GuestRepo(db)

    def resolve(self, identity: Identity) -> ResolvedCart:
        try:
            if isinstance(identity, AuthenticatedUser):
                cart = self.user_cart(identity.user_id)
                resolved = ResolvedCart(cart_id=cart.id, identity=identity)
            else:
                resolved = self._resolve_guest(identity)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Cart resolution failed: {e}")
            raise CartConflict() from e
        return resolved

    def user_cart(self, user_id: str) -> CartModel:
        """Find or create the user's cart inside the caller's transaction (no commit)."""
        cart = self.repo.find_by_user(user_id)
        if cart is not None:
            return cart

        created = self.repo.insert_cart(CartModel(user_id=user_id))
        if created is not None:
            logger.info(f"Utworzono nowy koszyk {created.id} dla uzytkownika {user_id}")
            return created

        # ktos nas wyprzedzil - bierzemy jego koszyk
        cart = self.repo.find_by_user(user_id)
        if cart is None:
            raise CartConflict()
        return cart

    def find_guest(self, guest: Guest | None) -> GuestModel | None:
        if guest is None:
            return None
        return self.guests.get_by_token(guest.session_token)

    def _resolve_guest(self, guest: Guest | None) -> ResolvedCart:
        issued = None
        if guest is None:
            issued = issue_guest_token()
            token = issued
        else:
            token = guest.session_token

        # kazde uzycie przedluza waznosc goscia
        expires = datetime.now(timezone.utc) + timedelta(seconds=GUEST_TTL_SECONDS)

        record = self.guests.get_by_token(token)
        if record is None:
            record = self.guests.insert(token, expires) or self.guests.get_by_token(token)
            if record is None:
                raise CartConflict()
        else:
            record.expires_at = expires

        cart = self.repo.find_by_guest(record.id)
        if cart is None:
            cart = self.repo.insert_cart(CartModel(guest_id=record.id)) or self.repo.find_by_guest(record.id)
            if cart is None:
                raise CartConflict()
            logger.info(f"Utworzono koszyk goscia {cart.id} (guest {record.id})")

        return ResolvedCart(
            cart_id=cart.id,
            identity=Guest(session_token=token, expires_at=expires),
            issued_token=issued,
        )

# storefront/services/merge_service.py
from typing import Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.domain.errors import CartConflict, CommerceError
from storefront.domain.identity import AuthenticatedUser, Guest
from storefront.repos.cart_repo import CartRepo
from storefront.repos.guest_repo import GuestRepo
from storefront.services.cart_resolver import CartResolver
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class _AlreadyMerged(Exception):
    pass


class CartMergeService:
    """
    Przy logowaniu przenosi koszyk goscia do koszyka uzytkownika.

    Cala operacja to jedna transakcja: albo wszystkie pozycje sa przeniesione
    i koszyk goscia usuniety, albo nic sie nie zmienia. Ilosci sa sumowane,
    bez sprawdzania magazynu (to robi kolejna mutacja albo checkout).
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.guests = GuestRepo(db)
        self.resolver = CartResolver(db)

    def merge_guest_into_user(self, guest: Guest | None, user: AuthenticatedUser) -> Dict[str, Any]:
        record = self.resolver.find_guest(guest)
        if record is None:
            logger.info(f"Merge dla {user.user_id}: brak goscia, nic do zrobienia")
            return self._noop()

        # commit i rollback wygaszaja obiekty, a gosc i jego koszyk zaraz znikaja - trzymamy same id
        guest_id = record.id
        try:
            # blokada wiersza koszyka goscia - rownolegly merge poczeka i zobaczy pusto
            guest_cart = self.repo.find_by_guest(guest_id, for_update=True)
            if guest_cart is None:
                self.repo.rollback()
                logger.info(f"Merge dla {user.user_id}: gosc {guest_id} nie ma koszyka")
                return self._noop()

            guest_cart_id = guest_cart.id
            user_cart_id = self.resolver.user_cart(user.user_id).id
            merged = self._fold_items(guest_cart_id, user_cart_id)

            if self.repo.delete_cart(guest_cart_id) == 0:
                raise _AlreadyMerged()
            self.guests.delete(guest_id)

            self.repo.commit()
        except _AlreadyMerged:
            self.repo.rollback()
            logger.info(f"Koszyk goscia {guest_id} zostal juz scalony przez inne zadanie")
            return self._noop()
        except CommerceError:
            self.repo.rollback()
            raise
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Merge koszyka goscia {guest_id} nieudany: {e}")
            raise CartConflict() from e

        logger.info(
            f"Scalono koszyk goscia {guest_cart_id} do koszyka {user_cart_id} "
            f"uzytkownika {user.user_id} ({merged} pozycji)"
        )
        return {"merged": True, "items_merged": merged, "cart_id": user_cart_id}

    def _fold_items(self, guest_cart_id: int, user_cart_id: int) -> int:
        merged = 0
        for item in self.repo.get_items(guest_cart_id):
            # ten sam wariant u usera - sumujemy, nigdy nie nadpisujemy
            if self.repo.increment_item(user_cart_id, item.variant_id, item.quantity):
                merged += 1
                continue
            if self.repo.move_item(item.id, guest_cart_id, user_cart_id) == 0:
                raise _AlreadyMerged()
            merged += 1
        return merged

    @staticmethod
    def _noop() -> Dict[str, Any]:
        return {"merged": False, "items_merged": 0, "cart_id": None}

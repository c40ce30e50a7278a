#storefront/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from storefront.api.deps import (
    GUEST_COOKIE,
    current_identity,
    get_product_client,
    guest_identity,
    raise_http,
    remember_guest,
)
from storefront.data.database import get_db
from storefront.domain.errors import CommerceError
from storefront.domain.identity import AuthenticatedUser, Guest, Identity
from storefront.domain.schemas import (
    AddItemIn,
    CartMutationOut,
    CartOut,
    MergeOut,
    UpdateItemIn,
)
from storefront.services.cart_resolver import CartResolver
from storefront.services.cart_service import CartService
from storefront.services.merge_service import CartMergeService
from storefront.services.product_client import ProductClient

router = APIRouter(prefix="/cart", tags=["cart"])


def _resolve(db: Session, identity: Identity, response: Response) -> int:
    resolved = CartResolver(db).resolve(identity)
    remember_guest(response, resolved)
    return resolved.cart_id


@router.get("", response_model=CartOut)
def get_cart(
    response: Response,
    identity: Identity = Depends(current_identity),
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
):
    try:
        cart_id = _resolve(db, identity, response)
        return CartService(db, product_client).get_cart(cart_id)
    except CommerceError as e:
        raise_http(e)


@router.post("/items", response_model=CartMutationOut)
def add_item(
    payload: AddItemIn,
    response: Response,
    identity: Identity = Depends(current_identity),
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
):
    try:
        cart_id = _resolve(db, identity, response)
        return CartService(db, product_client).add_item(cart_id, payload.variant_id, payload.quantity)
    except CommerceError as e:
        raise_http(e)


@router.patch("/items/{item_id}", response_model=CartMutationOut)
def update_item(
    item_id: int,
    payload: UpdateItemIn,
    response: Response,
    identity: Identity = Depends(current_identity),
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
):
    try:
        cart_id = _resolve(db, identity, response)
        return CartService(db, product_client).update_quantity(cart_id, item_id, payload.quantity)
    except CommerceError as e:
        raise_http(e)


@router.delete("/items/{item_id}", response_model=CartMutationOut)
def remove_item(
    item_id: int,
    response: Response,
    identity: Identity = Depends(current_identity),
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
):
    try:
        cart_id = _resolve(db, identity, response)
        return CartService(db, product_client).remove_item(cart_id, item_id)
    except CommerceError as e:
        raise_http(e)


@router.delete("", response_model=CartMutationOut)
def clear_cart(
    response: Response,
    identity: Identity = Depends(current_identity),
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
):
    try:
        cart_id = _resolve(db, identity, response)
        return CartService(db, product_client).clear_cart(cart_id)
    except CommerceError as e:
        raise_http(e)


@router.post("/merge", response_model=MergeOut)
def merge_guest_cart(
    response: Response,
    identity: Identity = Depends(current_identity),
    guest: Guest | None = Depends(guest_identity),
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
):
    if not isinstance(identity, AuthenticatedUser):
        raise HTTPException(status_code=401, detail="User not authenticated")

    try:
        result = CartMergeService(db).merge_guest_into_user(guest, identity)
        response.delete_cookie(GUEST_COOKIE)
        if not result["merged"]:
            return {"merged": False, "items_merged": 0, "cart": None}
        return {
            "merged": True,
            "items_merged": result["items_merged"],
            "cart": CartService(db, product_client).get_cart(result["cart_id"]),
        }
    except CommerceError as e:
        raise_http(e)

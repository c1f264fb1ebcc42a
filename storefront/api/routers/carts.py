# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import InvalidCart, ProductNotFound
from storefront.domain.schemas import ItemIn, CartOut
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(db: Session):
    return CartService(db)


@router.get("/{user_id}", response_model=CartOut)
def get_cart(user_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    return svc.get_cart(user_id)


@router.post("/{user_id}/items", response_model=CartOut)
def add_item(
    user_id: int,
    payload: ItemIn,
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.add_product(
            user_id=user_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
        )
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidCart as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.delete("/{user_id}/items/{product_id}", response_model=CartOut)
def remove_item(
    user_id: int,
    product_id: str,
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.remove_product(user_id, product_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime

from storefront.utils.settings import DEFAULT_CURRENCY


class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: str = Field(..., min_length=1, max_length=64, description="ID produktu")
    quantity: int = Field(..., gt=0, description="Ilosc produktu (musi byc > 0)")


class CartItemOut(BaseModel):
    product_id: str
    quantity: int
    price: Decimal


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    user_id: int
    items: List[CartItemOut]
    total: Decimal


class UserCreate(BaseModel):
    """Schema dla tworzenia uzytkownika."""

    id: int = Field(..., gt=0, description="ID uzytkownika (musi byc > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Imie uzytkownika")
    email: str | None = Field(None, max_length=255, description="Adres do potwierdzen zamowien")


class UserRead(BaseModel):
    id: int
    name: str
    email: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ShippingAddress(BaseModel):
    name: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str | None = None
    zip: str = Field(..., min_length=1)
    country: str = Field(..., min_length=2)


class CheckoutIn(BaseModel):
    """Schema dla checkoutu. Ceny nigdy nie przychodza od klienta."""

    user_id: int = Field(..., gt=0)
    shipping_address: ShippingAddress
    payment_method: str = Field(..., min_length=1, description="Token metody platnosci z bramki, np. pm_card_visa")
    currency: str = Field(DEFAULT_CURRENCY, min_length=3, max_length=3)
    discount_code: str | None = None


class TotalsOut(BaseModel):
    subtotal: Decimal
    discount: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


class CheckoutOut(BaseModel):
    """
    201: zamowienie potwierdzone (order_id)
    202: platnosc wymaga akcji klienta (client_secret), wynik przyjdzie webhookiem
    """

    checkout_id: str
    status: str
    payment_reference: str | None = None
    order_id: int | None = None
    client_secret: str | None = None
    totals: TotalsOut | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderLineOut(BaseModel):
    product_id: str
    quantity: int
    unit_price_at_purchase: Decimal


class OrderOut(BaseModel):
    """Schema dla zamowienia (response)."""

    id: int
    user_id: int
    status: str
    subtotal: Decimal
    discount: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal
    currency: str
    shipping_address: dict
    payment_reference: str
    created_at: datetime
    lines: List[OrderLineOut]

    model_config = ConfigDict(from_attributes=True)


class WebhookAckOut(BaseModel):
    event_id: str
    outcome: str
    duplicate: bool = False
    order_id: int | None = None

    model_config = ConfigDict(from_attributes=True)

# storefront/domain/checkout.py
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum

from storefront.domain.errors import InvalidTransition

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    #stripe operuje na centach
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED},
    OrderStatus.CONFIRMED: {OrderStatus.FULFILLED, OrderStatus.CANCELLED},
    OrderStatus.FULFILLED: set(),
    OrderStatus.CANCELLED: set(),
}


class CheckoutStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    COMPENSATED = "compensated"


CHECKOUT_TRANSITIONS = {
    CheckoutStatus.PENDING: {
        CheckoutStatus.COMPLETED,
        CheckoutStatus.CANCELLED,
        CheckoutStatus.COMPENSATED,
    },
    CheckoutStatus.COMPLETED: set(),
    CheckoutStatus.CANCELLED: set(),
    CheckoutStatus.COMPENSATED: set(),
}


def check_transition(transitions: dict, current, target) -> None:
    if target not in transitions[current]:
        raise InvalidTransition(f"Niedozwolone przejscie {current.value} -> {target.value}")


@dataclass(frozen=True)
class CartLine:
    user_id: int
    product_id: str
    quantity: int


@dataclass(frozen=True)
class ProductSnapshot:
    product_id: str
    name: str
    unit_price: Decimal
    available_quantity: int


@dataclass(frozen=True)
class ValidatedLine:
    """Pozycja z cena zamrozona w momencie walidacji."""

    product_id: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ValidatedLine":
        return cls(
            product_id=data["product_id"],
            quantity=int(data["quantity"]),
            unit_price=to_money(data["unit_price"]),
        )


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal


class PaymentStatus(str, Enum):
    SUCCEEDED = "succeeded"
    REQUIRES_ACTION = "requires_action"
    DECLINED = "declined"
    GATEWAY_ERROR = "gateway_error"


@dataclass(frozen=True)
class PaymentResult:
    status: PaymentStatus
    payment_reference: str | None = None
    reason: str | None = None
    transient: bool = False
    client_secret: str | None = None

    @classmethod
    def succeeded(cls, payment_reference: str) -> "PaymentResult":
        return cls(PaymentStatus.SUCCEEDED, payment_reference=payment_reference)

    @classmethod
    def requires_action(cls, payment_reference: str, client_secret: str | None = None) -> "PaymentResult":
        return cls(
            PaymentStatus.REQUIRES_ACTION,
            payment_reference=payment_reference,
            client_secret=client_secret,
        )

    @classmethod
    def declined(cls, reason: str, payment_reference: str | None = None) -> "PaymentResult":
        return cls(PaymentStatus.DECLINED, payment_reference=payment_reference, reason=reason)

    @classmethod
    def gateway_error(cls, reason: str, transient: bool, payment_reference: str | None = None) -> "PaymentResult":
        return cls(
            PaymentStatus.GATEWAY_ERROR,
            payment_reference=payment_reference,
            reason=reason,
            transient=transient,
        )


class RefundStatus(str, Enum):
    PENDING = "pending"
    REFUNDED = "refunded"
    FAILED = "failed"


@dataclass(frozen=True)
class RefundOutcome:
    payment_reference: str
    status: RefundStatus
    gateway_refund_id: str | None = None
    already_handled: bool = False


@dataclass(frozen=True)
class CheckoutOutcome:
    """Wynik synchronicznego checkoutu zwracany do API."""

    checkout_id: str
    status: str
    payment_reference: str | None = None
    order_id: int | None = None
    client_secret: str | None = None
    totals: Totals | None = None


@dataclass(frozen=True)
class WebhookEvent:
    event_id: str
    event_type: str
    payment_reference: str | None
    payload: dict = field(default_factory=dict)

    @property
    def metadata(self) -> dict:
        obj = self.payload.get("data", {}).get("object", {}) or {}
        return obj.get("metadata", {}) or {}


@dataclass(frozen=True)
class WebhookAck:
    event_id: str
    outcome: str
    duplicate: bool = False
    order_id: int | None = None

# storefront/domain/errors.py
"""
Typowane bledy checkoutu.

Walidacja (przed platnoscia, bez retry), platnosci, bledy przejsciowe
(retry z backoff), spojnosc (kompensacja / alert) i bezpieczenstwo (webhook).
"""


class CheckoutError(Exception):
    code = "checkout_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# walidacja
class ValidationError(CheckoutError):
    code = "validation_error"


class InsufficientInventory(ValidationError):
    code = "insufficient_inventory"

    def __init__(self, product_id: str, requested: int, available: int):
        super().__init__(
            f"Niewystarczajacy stan magazynowy produktu {product_id}: "
            f"zadano {requested}, dostepne {available}"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class ProductNotFound(ValidationError):
    code = "product_not_found"

    def __init__(self, product_id: str):
        super().__init__(f"Produkt {product_id} nie istnieje")
        self.product_id = product_id


class InvalidCart(ValidationError):
    code = "invalid_cart"


# platnosci
class PaymentDeclined(CheckoutError):
    code = "payment_declined"

    def __init__(self, reason: str):
        super().__init__(f"Platnosc odrzucona: {reason}")
        self.reason = reason


# przejsciowe / infrastruktura
class GatewayError(CheckoutError):
    code = "gateway_error"

    def __init__(self, message: str, transient: bool):
        super().__init__(message)
        self.transient = transient


class StorageError(CheckoutError):
    code = "storage_error"


class CheckoutInProgress(CheckoutError):
    code = "checkout_in_progress"


# spojnosc
class OrderNotCommitted(CheckoutError):
    """Platnosc pobrana, zamowienie nie powstalo, srodki zwrocone."""

    code = "order_not_committed"

    def __init__(self, payment_reference: str, cause: CheckoutError):
        super().__init__(
            f"Zamowienie dla platnosci {payment_reference} nie zostalo utworzone "
            f"({cause.message}); platnosc zwrocona"
        )
        self.payment_reference = payment_reference
        self.cause = cause


class RefundFailed(CheckoutError):
    code = "refund_failed"

    def __init__(self, payment_reference: str, reason: str):
        super().__init__(f"Zwrot platnosci {payment_reference} nieudany: {reason}")
        self.payment_reference = payment_reference
        self.reason = reason


# bezpieczenstwo
class InvalidSignature(CheckoutError):
    code = "invalid_signature"


class InvalidTransition(CheckoutError):
    code = "invalid_transition"

# storefront/services/order_committer.py
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel, OrderLineModel
from storefront.domain.checkout import (
    CheckoutStatus,
    OrderStatus,
    Totals,
    ValidatedLine,
    to_money,
)
from storefront.domain.errors import InsufficientInventory, InvalidCart, ProductNotFound, StorageError
from storefront.repos.cart_repo import CartRepo
from storefront.repos.checkout_repo import CheckoutRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.payment_repo import PaymentEventRepo
from storefront.repos.product_repo import ProductRepo
from storefront.utils.retry import db_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommitResult:
    order: OrderModel
    created: bool


class OrderCommitter:
    """
    Lokalna granica transakcji: zamowienie + pozycje + dekrementacja magazynu
    + czyszczenie koszyka, wszystko albo nic.

    Nigdy nie rozmawia z bramka platnosci. Jesli commit sie nie uda po pobraniu
    platnosci, wolajacy odpala CompensationService.

    Idempotentny po payment_reference: drugi commit dla tej samej platnosci
    zwraca istniejace zamowienie i niczego nie zapisuje.
    """

    def __init__(self, db: Session):
        self.db = db
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.carts = CartRepo(db)
        self.checkouts = CheckoutRepo(db)
        self.events = PaymentEventRepo(db)

    def commit(
        self,
        user_id: int,
        lines: list[ValidatedLine],
        shipping_address: dict,
        payment_reference: str,
        totals: Totals,
        currency: str,
        checkout_id: str | None = None,
        event_id: str | None = None,
    ) -> CommitResult:
        try:
            return self._commit_with_retry(
                user_id, lines, shipping_address, payment_reference,
                totals, currency, checkout_id, event_id,
            )
        except OperationalError as e:
            logger.error(f"Commit zamowienia dla {payment_reference} nieudany (storage): {e}")
            raise StorageError("Baza danych chwilowo niedostepna") from e

    @db_retry()
    def _commit_with_retry(self, user_id, lines, shipping_address, payment_reference,
                           totals, currency, checkout_id, event_id) -> CommitResult:
        if not payment_reference:
            raise InvalidCart("Brak referencji platnosci")
        if not lines:
            raise InvalidCart("Brak pozycji zamowienia")

        existing = self.orders.get_by_payment_reference(payment_reference)
        if existing:
            logger.info(f"Zamowienie {existing.id} dla {payment_reference} juz istnieje, pomijam commit")
            self._finish_extras(checkout_id, event_id, outcome="duplicate")
            self.db.commit()
            return CommitResult(existing, created=False)

        try:
            order = self._apply(user_id, lines, shipping_address, payment_reference, totals, currency)
            self._finish_extras(checkout_id, event_id, outcome="order_created")
            order.transition_to(OrderStatus.CONFIRMED)
            self.db.commit()
        except IntegrityError:
            #wyscig dwoch commitow dla tej samej platnosci, unikalny payment_reference wygrywa jeden
            self.db.rollback()
            winner = self.orders.get_by_payment_reference(payment_reference)
            if winner is None:
                raise
            logger.info(f"Rownolegly commit dla {payment_reference} przegral, zwracam zamowienie {winner.id}")
            return CommitResult(winner, created=False)
        except Exception as e:
            logger.error(f"Commit zamowienia dla {payment_reference} wycofany: {e}")
            self.db.rollback()
            raise

        logger.info(
            f"Zamowienie {order.id} potwierdzone: user {user_id}, platnosc {payment_reference}, "
            f"total {order.total} {order.currency}"
        )
        return CommitResult(order, created=True)

    def _apply(self, user_id, lines, shipping_address, payment_reference, totals, currency) -> OrderModel:
        # 1. lock wierszy produktow + ponowny check (od walidacji minal round-trip do bramki)
        requested: dict[str, int] = {}
        for line in lines:
            requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

        locked = self.products.lock_products(requested.keys())
        for product_id, qty in requested.items():
            product = locked.get(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            if product.available_quantity < qty:
                raise InsufficientInventory(product_id, qty, product.available_quantity)

        # 2. zamowienie (pending, niewidoczne na zewnatrz do commitu)
        order = self.orders.add_order(
            OrderModel(
                user_id=user_id,
                status=OrderStatus.PENDING.value,
                subtotal=totals.subtotal,
                discount=totals.discount,
                shipping_cost=totals.shipping_cost,
                tax=totals.tax,
                total=totals.total,
                currency=currency,
                shipping_address=shipping_address,
                payment_reference=payment_reference,
            )
        )

        # 3. dekrementacja magazynu, warunkowy update nie zejdzie ponizej zera
        for product_id, qty in requested.items():
            if self.products.decrement_inventory(product_id, qty) == 0:
                raise InsufficientInventory(product_id, qty, self.products.current_quantity(product_id))

        # 4. pozycje z cena zamrozona przy walidacji
        self._add_lines(order, lines)

        subtotal = to_money(sum((line.line_total for line in lines), Decimal("0.00")))
        if subtotal != to_money(totals.subtotal):
            raise InvalidCart(f"Suma pozycji {subtotal} != subtotal {totals.subtotal}")

        # 5. z koszyka znikaja tylko pozycje tego zamowienia (koszyk edytowalny w trakcie 3DS)
        self.carts.remove_ordered(user_id, requested)
        return order

    def _add_lines(self, order: OrderModel, lines: list[ValidatedLine]) -> None:
        for line in lines:
            order.lines.append(
                OrderLineModel(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price_at_purchase=line.unit_price,
                )
            )
        self.db.flush()

    def _finish_extras(self, checkout_id: str | None, event_id: str | None, outcome: str) -> None:
        #zapisy w tej samej transakcji co zamowienie: sesja checkoutu + event webhooka
        if checkout_id:
            checkout = self.checkouts.get(checkout_id)
            if checkout and checkout.status == CheckoutStatus.PENDING.value:
                checkout.transition_to(CheckoutStatus.COMPLETED)
        if event_id:
            self.events.mark_processed(event_id, outcome)

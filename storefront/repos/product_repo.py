# storefront/repos/product_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: str) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_products(self, product_ids) -> dict[str, ProductModel]:
        rows = self.db.execute(
            select(ProductModel).where(ProductModel.id.in_(list(product_ids)))
        ).scalars().all()
        return {p.id: p for p in rows}

    def lock_products(self, product_ids) -> dict[str, ProductModel]:
        """
        SELECT ... FOR UPDATE na wierszach produktow.
        Stala kolejnosc (po id) zeby dwa checkouty nie zakleszczyly sie na tych samych wierszach.
        populate_existing - swiezy stan z bazy zamiast cache sesji
        """
        rows = self.db.execute(
            select(ProductModel)
            .where(ProductModel.id.in_(sorted(product_ids)))
            .order_by(ProductModel.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        return {p.id: p for p in rows}

    def decrement_inventory(self, product_id: str, quantity: int) -> int:
        #warunkowy update, rowcount 0 = brak towaru (tez na bazach bez FOR UPDATE)
        res = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.available_quantity >= quantity,
            )
            .values(available_quantity=ProductModel.available_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def current_quantity(self, product_id: str) -> int:
        qty = self.db.execute(
            select(ProductModel.available_quantity).where(ProductModel.id == product_id)
        ).scalar_one_or_none()
        return qty or 0

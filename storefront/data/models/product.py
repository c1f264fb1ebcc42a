# storefront/data/models/product.py
from sqlalchemy import Column, Integer, String, Numeric, CheckConstraint

from storefront.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(String(64), primary_key=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    #ledger magazynowy, zmniejszany tylko przez OrderCommitter
    available_quantity = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("available_quantity >= 0", name="ck_product_quantity_non_negative"),
    )

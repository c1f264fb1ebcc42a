# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import SessionLocal
from storefront.data.models.product import ProductModel
from storefront.data.models.user import UserModel

PRODUCTS = [
    {"id": "keyboard", "name": "Keyboard", "price": Decimal("199.99"), "available_quantity": 25},
    {"id": "mouse", "name": "Mouse", "price": Decimal("49.50"), "available_quantity": 100},
    {"id": "monitor", "name": "Monitor", "price": Decimal("899.00"), "available_quantity": 10},
]

USERS = [
    {"id": 1, "name": "Demo", "email": "demo@example.com"},
]


def seed(db=None) -> int:
    """Katalog dev/demo. Tylko brakujace wiersze, istniejace stany magazynu nietkniete."""
    own_session = db is None
    db = db or SessionLocal()
    try:
        added = 0
        for data in PRODUCTS:
            if db.get(ProductModel, data["id"]) is None:
                db.add(ProductModel(**data))
                added += 1
        for data in USERS:
            if db.get(UserModel, data["id"]) is None:
                db.add(UserModel(**data))
        db.commit()
        return added
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    seed()

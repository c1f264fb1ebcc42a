from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel
from storefront.domain.schemas import UserCreate, UserRead
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def create_user(self, payload: UserCreate) -> UserRead:
        existing = self.db.get(UserModel, payload.id)
        if existing:
            #adres email podmieniany, reszta bez zmian
            if payload.email and existing.email != payload.email:
                existing.email = payload.email
                self.db.commit()
            return UserRead.model_validate(existing)

        user = UserModel(id=payload.id, name=payload.name, email=payload.email)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Utworzono uzytkownika {user.id}")
        return UserRead.model_validate(user)

    def get_user(self, user_id: int) -> UserRead:
        user = self.db.get(UserModel, user_id)
        if not user:
            raise ValueError("User not found")
        return UserRead.model_validate(user)

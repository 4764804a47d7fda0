from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel
from storefront.domain.errors import DuplicateReferenceError, NotFoundError
from storefront.domain.schemas import UserCreate, UserRead
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    """Minimal identity records: who is a customer and who is an admin."""

    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        """Use Case: register a user. Creating an existing id returns the stored user unchanged."""
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        try:
            user = self.repo.insert_user(
                UserModel(id=payload.id, name=payload.name, email=payload.email, role=payload.role)
            )
            self.repo.commit()
        except DuplicateReferenceError:
            self.repo.rollback()
            user = self.repo.get_user(payload.id)
            if user is None:
                raise
            return UserRead.model_validate(user)
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"User {user.id} created with role {user.role}")
        return UserRead.model_validate(user)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found", user_id=user_id)
        return UserRead.model_validate(user)

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel
from storefront.domain.errors import DuplicateReferenceError


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def insert_user(self, user: UserModel) -> UserModel:
        # same id inserted concurrently -> DuplicateReferenceError, caller re-reads
        try:
            with self.db.begin_nested():
                self.db.add(user)
                self.db.flush()
        except IntegrityError as e:
            raise DuplicateReferenceError(f"User {user.id} already exists", user_id=user.id) from e
        return user

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from moviegroups.db.models import UserORM, GroupORM
from moviegroups.domain.models import User
from moviegroups.repositories.interface.user_repository import UserRepository
from moviegroups.exceptions.repository import (
    EntityNotFoundException,
    DuplicateEntityException,
    RepositoryOperationException,
)

logger = logging.getLogger(__name__)

# columns copied onto the row by update(); id and created_at never change
UPDATABLE_FIELDS = ("username", "email", "hashed_password", "is_active", "is_admin")


class SQLAlchemyUserRepo(UserRepository):
    def __init__(self, db: Session):
        self.db = db

    def _to_domain(self, user_orm: UserORM) -> User:
        return User(
            id=user_orm.id,
            username=user_orm.username,
            email=user_orm.email,
            hashed_password=user_orm.hashed_password,
            is_active=user_orm.is_active,
            is_admin=user_orm.is_admin,
            created_at=user_orm.created_at
        )

    def _find_ignoring_case(self, column, value: str) -> Optional[User]:
        user_orm = self.db.query(UserORM).filter(func.lower(column) == value.lower()).first()
        return self._to_domain(user_orm) if user_orm else None

    def _duplicate_field(self, user: User, exclude_id: Optional[int] = None) -> str:
        """Name the credential that clashes, for the error message."""
        for field, column in (("username", UserORM.username), ("email", UserORM.email)):
            query = self.db.query(UserORM.id).filter(func.lower(column) == getattr(user, field).lower())
            if exclude_id is not None:
                query = query.filter(UserORM.id != exclude_id)
            if query.first():
                return field
        return "credentials"

    def get_by_id(self, user_id: int) -> Optional[User]:
        try:
            user_orm = self.db.get(UserORM, user_id)
            return self._to_domain(user_orm) if user_orm else None
        except Exception as e:
            raise RepositoryOperationException(f"Failed to load user {user_id}: {str(e)}")

    def get_by_username(self, username: str) -> Optional[User]:
        try:
            return self._find_ignoring_case(UserORM.username, username)
        except Exception as e:
            raise RepositoryOperationException(f"Failed to look up username '{username}': {str(e)}")

    def get_by_email(self, email: str) -> Optional[User]:
        try:
            return self._find_ignoring_case(UserORM.email, email)
        except Exception as e:
            raise RepositoryOperationException(f"Failed to look up email '{email}': {str(e)}")

    def create(self, user: User) -> User:
        user_orm = UserORM(
            username=user.username,
            email=user.email,
            hashed_password=user.hashed_password,
            is_active=user.is_active,
            is_admin=user.is_admin,
            created_at=user.created_at
        )
        try:
            self.db.add(user_orm)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            field = self._duplicate_field(user)
            raise DuplicateEntityException(f"An account with this {field} already exists")
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to create user '{user.username}': {str(e)}")

        self.db.refresh(user_orm)
        logger.info(f"Created user {user_orm.id} ({user_orm.username})")
        return self._to_domain(user_orm)

    def update(self, user: User) -> User:
        user_orm = self.db.get(UserORM, user.id)
        if user_orm is None:
            raise EntityNotFoundException(f"User {user.id} not found")

        for field in UPDATABLE_FIELDS:
            setattr(user_orm, field, getattr(user, field))

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            field = self._duplicate_field(user, exclude_id=user.id)
            raise DuplicateEntityException(f"Another account already uses this {field}")
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to update user {user.id}: {str(e)}")

        self.db.refresh(user_orm)
        return self._to_domain(user_orm)

    def delete(self, user_id: int) -> bool:
        user_orm = self.db.get(UserORM, user_id)
        if user_orm is None:
            return False

        owned = self.db.query(func.count(GroupORM.id)).filter(GroupORM.owner_id == user_id).scalar()
        if owned:
            raise RepositoryOperationException(
                f"User {user_id} still owns groups and cannot be deleted ({owned} owned)"
            )

        try:
            # memberships, personal lists and reviews go through ON DELETE CASCADE
            self.db.delete(user_orm)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise RepositoryOperationException(f"Failed to delete user {user_id}: {str(e)}")

        logger.info(f"Deleted user {user_id}")
        return True

    def get_all(self, limit: Optional[int] = None) -> List[User]:
        try:
            query = self.db.query(UserORM).order_by(UserORM.id.asc())
            if limit is not None:
                query = query.limit(limit)
            user_orms = query.all()
            return [self._to_domain(user_orm) for user_orm in user_orms]
        except Exception as e:
            raise RepositoryOperationException(f"Failed to list users: {str(e)}")

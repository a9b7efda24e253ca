from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.errors import ConflictError, DatabaseError
from backend.models.user import PROVIDER_MANAGED_PASSWORD, User, UserRole


def normalize_email(email: str) -> str:
    # The identity provider stores emails lower-cased; profiles must match it.
    return (email or '').strip().lower()


class UserDirectory:
    """Point queries against the ``users`` table, keyed by email."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> User | None:
        normalized = normalize_email(email)
        if not normalized:
            return None
        try:
            return self.db.query(User).filter(User.email == normalized).first()
        except SQLAlchemyError as exc:
            raise DatabaseError('Failed to look up user profile.') from exc

    def admin_exists(self) -> bool:
        try:
            return self.db.query(User.id).filter(User.role == UserRole.ADMIN).first() is not None
        except SQLAlchemyError as exc:
            raise DatabaseError('Failed to look up admin accounts.') from exc

    def create(
        self,
        email: str,
        role: UserRole = UserRole.STAFF,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> User:
        user = User(
            email=normalize_email(email),
            password_hash=PROVIDER_MANAGED_PASSWORD,
            role=role,
            first_name=first_name or None,
            last_name=last_name or None,
        )
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError('A record with this information already exists') from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise DatabaseError('Failed to save user profile.') from exc
        return user

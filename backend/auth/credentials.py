# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""User lookup and password handling against the users table."""

from typing import Optional

from sqlalchemy.orm import Session

from core.security import PasswordHasher
from models.user import User


class CredentialStore:
    def __init__(self, db: Session, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    def get(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def find_by_phone(self, phone: str) -> Optional[User]:
        return self.db.query(User).filter(User.phone == phone).first()

    def email_taken(self, email: str) -> bool:
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def create_user(
        self,
        name: str,
        email: str,
        password: str,
        is_freelancer: bool = False,
        is_client: bool = False,
        phone: Optional[str] = None,
    ) -> User:
        """Insert a user with a freshly hashed password.  Flushes, no commit."""
        user = User(
            name=name,
            email=email,
            password=self.hasher.hash(password),
            phone=phone,
            is_freelancer=is_freelancer,
            is_client=is_client,
        )
        self.db.add(user)
        self.db.flush()  # get user.id before the tokens are signed
        return user

    def check_password(self, user: User, plain: str) -> bool:
        return self.hasher.verify(plain, user.password)

    def set_password(self, user: User, plain: str) -> None:
        user.password = self.hasher.hash(plain)

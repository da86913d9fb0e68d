# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
Bootstrap script – creates the first admin user.

Run once after the initial migration:
    python bin/seed_admin.py

The script reads FIRST_ADMIN_EMAIL, FIRST_ADMIN_PASSWORD and FIRST_ADMIN_NAME
from the environment or etc/app.conf.  After the row is inserted those
variables are no longer used by the application.

Idempotent: an existing account with that email is granted the "admin" role
if it lacks it, and its password is left untouched.
"""

import sys
import os

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/seed_admin.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from auth.credentials import CredentialStore            # noqa: E402
from core.config import settings as default_settings   # noqa: E402
from core.security import PasswordHasher                # noqa: E402
from database import create_session_factory, transaction  # noqa: E402
from models.role import ADMIN_ROLE, Role, UserRoleRelation  # noqa: E402


def seed(settings=None, session_factory=None) -> bool:
    """Returns True when anything was created."""
    settings = settings or default_settings
    if not settings.first_admin_email or not settings.first_admin_password:
        print("[seed_admin] FIRST_ADMIN_EMAIL or FIRST_ADMIN_PASSWORD not set – nothing to do.")
        return False

    session_factory = session_factory or create_session_factory(settings.database_url)
    db = session_factory()
    try:
        store = CredentialStore(db, PasswordHasher(settings.bcrypt_salt_rounds))
        created = False

        with transaction(db):
            role = db.query(Role).filter(Role.name == ADMIN_ROLE).first()
            if role is None:
                role = Role(name=ADMIN_ROLE, description="Platform administrator")
                db.add(role)
                db.flush()

            user = store.find_by_email(settings.first_admin_email)
            if user is None:
                user = store.create_user(
                    name=settings.first_admin_name,
                    email=settings.first_admin_email,
                    password=settings.first_admin_password,
                )
                user.is_email_verified = True
                created = True
                print(f"[seed_admin] Admin '{settings.first_admin_email}' created.")
            else:
                print(f"[seed_admin] User '{settings.first_admin_email}' already exists – keeping password.")

            has_role = (
                db.query(UserRoleRelation)
                .filter(UserRoleRelation.user_id == user.id, UserRoleRelation.role_id == role.id)
                .first()
            )
            if has_role is None:
                db.add(UserRoleRelation(user_id=user.id, role_id=role.id))
                created = True
                print(f"[seed_admin] Granted '{ADMIN_ROLE}' role to '{settings.first_admin_email}'.")

        return created
    finally:
        db.close()


if __name__ == "__main__":
    seed()

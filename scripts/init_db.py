import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash
from sqlalchemy.orm import Session

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.customs.constants import ROLE_ADMIN, ROLE_CLIENT
from app.customs.models import Permission, Profile, Role, User
from scripts._db_utils import script_session

PERMISSIONS: list[tuple[str, str]] = [
    ("admin.view", "Admin: view dashboard"),
    ("clients.view", "Clients: view"),
    ("clients.create", "Clients: create"),
    ("clients.edit", "Clients: edit"),
    ("dispatches.view", "Dispatches: view"),
    ("dispatches.create", "Dispatches: create"),
    ("dispatches.edit", "Dispatches: edit and change status"),
    ("documents.view", "Documents: view and download"),
    ("documents.upload", "Documents: upload"),
    ("payments.view", "Payments: view"),
    ("payments.create", "Payments: create"),
    ("payments.edit", "Payments: change status"),
    ("calendar.view", "Calendar: view"),
    ("calendar.edit", "Calendar: create and delete events"),
    ("notifications.view", "Notifications: read own inbox"),
    ("users.view", "Users: view accounts"),
    ("users.manage", "Users: create accounts and issue password resets"),
    ("portal.view", "Client portal: view own dispatches"),
]

CLIENT_PERMISSIONS = ("portal.view", "notifications.view")
ADMIN_PERMISSIONS = tuple(k for k, _ in PERMISSIONS if k != "portal.view")


def seed_roles(s: Session) -> dict[str, Role]:
    """Create missing permissions and the admin/client roles. Safe to re-run."""

    def ensure_perm(key: str, name: str) -> Permission:
        p = s.query(Permission).filter(Permission.key == key).one_or_none()
        if not p:
            p = Permission(key=key, name=name)
            s.add(p)
        return p

    perms = {key: ensure_perm(key, name) for key, name in PERMISSIONS}

    def ensure_role(key: str, name: str, perm_keys) -> Role:
        role = s.query(Role).filter(Role.key == key).one_or_none()
        if not role:
            role = Role(key=key, name=name)
            s.add(role)
        for k in perm_keys:
            if perms[k] not in role.permissions:
                role.permissions.append(perms[k])
        return role

    return {
        ROLE_ADMIN: ensure_role(ROLE_ADMIN, "Administrator", ADMIN_PERMISSIONS),
        ROLE_CLIENT: ensure_role(ROLE_CLIENT, "Client", CLIENT_PERMISSIONS),
    }


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@customs.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    admin_name = (os.environ.get("ADMIN_NAME") or "Administrador").strip()

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///customs.db").strip()

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url) as s:
        roles = seed_roles(s)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(email=admin_email, password_hash=generate_password_hash(admin_password), is_active=True)
            s.add(user)
        if roles[ROLE_ADMIN] not in user.roles:
            user.roles.append(roles[ROLE_ADMIN])
        s.flush()

        if user.profile is None:
            s.add(Profile(user_id=user.id, email=admin_email, full_name=admin_name, role=ROLE_ADMIN))

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()

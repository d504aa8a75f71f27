"""Create an admin account.

Usage: uv run python bin/create-admin.py <email> <username>

The password is read from the terminal and never echoed.
"""

import asyncio
import getpass
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from shared.auth.errors import AuthError
from shared.auth.models import Role
from shared.auth.password import get_hasher
from shared.auth.service import AuthService
from shared.auth.session_manager import SessionManager
from shared.auth.settings import AuthSettings
from shared.db import Database, SqliteSessionRepository, SqliteUserRepository


async def main() -> None:
    if len(sys.argv) != 3:
        print(f"Usage: {sys.argv[0]} <email> <username>")
        sys.exit(1)

    email, username = sys.argv[1], sys.argv[2]
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Confirm password: "):
        print("Error: Passwords do not match")
        sys.exit(1)

    # Only the store and hasher settings are needed; supply a placeholder
    # for oauth_state_secret so the script works without it being set.
    auth_settings = AuthSettings(oauth_state_secret="unused")  # type: ignore[call-arg]

    db = Database(auth_settings.database_path)
    db.connect()

    try:
        auth_service = AuthService(
            SqliteUserRepository(db),
            SessionManager(SqliteSessionRepository(db)),
            password_hasher=get_hasher(auth_settings.password_hasher, rounds=auth_settings.bcrypt_rounds),
        )

        try:
            user = await auth_service.register_local(email, username, password, role=Role.ADMIN)
        except AuthError as e:
            print(f"Error: {e}")
            sys.exit(1)

        print(f"Admin created: {user.username} (id: {user.user_id})")
    finally:
        db.close()


if __name__ == "__main__":
    asyncio.run(main())

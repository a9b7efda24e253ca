"""Create the first admin account from the command line.

Usage:
    python -m backend.create_admin [email] [password]

Falls back to INITIAL_ADMIN_EMAIL / INITIAL_ADMIN_PASSWORD when arguments
are omitted. Fails if an admin already exists.
"""
import json
import sys

from backend.auth.directory import UserDirectory
from backend.auth.identity_provider import SupabaseIdentityProvider
from backend.core import config
from backend.core.errors import AppError
from backend.database import create_db_engine, create_session_factory, ensure_user_schema
from backend.services.auth_service import AuthService


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    email = args[0] if len(args) > 0 else config.INITIAL_ADMIN_EMAIL
    password = args[1] if len(args) > 1 else config.INITIAL_ADMIN_PASSWORD

    config.validate_runtime_config()
    engine = create_db_engine(config.DATABASE_URL, use_ssl=config.DATABASE_SSL)
    ensure_user_schema(engine)
    db = create_session_factory(engine)()
    provider = SupabaseIdentityProvider.from_settings(
        config.SUPABASE_URL,
        config.SUPABASE_ANON_KEY,
        config.SUPABASE_SERVICE_ROLE_KEY,
    )
    try:
        admin = AuthService(UserDirectory(db), provider).create_initial_admin(email, password)
    except AppError as exc:
        print(f"Admin bootstrap failed ({exc.status_code}): {exc.message}", file=sys.stderr)
        return 1
    finally:
        db.close()
        engine.dispose()

    print(json.dumps(admin.model_dump(mode="json")))
    return 0


if __name__ == "__main__":
    sys.exit(main())

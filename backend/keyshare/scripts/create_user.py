"""Register a user and print its capability key.

Users have no signup endpoint; operators create them with this script:

    python -m keyshare.scripts.create_user [--key KEY]
"""
import argparse
import asyncio
import os
import secrets
import sys

from sqlalchemy.exc import IntegrityError

from keyshare.core.config import Settings
from keyshare.core.database import Base, create_engine, create_session_factory
from keyshare.models import User
from keyshare.services.gates import is_valid_key


async def create_user(settings: Settings, key: str | None = None) -> User:
    # HTTP servers trim surrounding whitespace from header values
    if key is not None and (not is_valid_key(key) or key != key.strip()):
        raise ValueError("key must be visible ASCII without surrounding whitespace")
    engine = create_engine(settings)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with create_session_factory(engine)() as db:
            user = User(key=key or secrets.token_urlsafe(32))
            db.add(user)
            await db.commit()
            return user
    finally:
        await engine.dispose()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create a user and print its key")
    parser.add_argument("--key", help="use this key instead of generating one")
    args = parser.parse_args(argv)

    # only the database is needed here, the upload settings may be unset
    settings = Settings(
        BASE_URL=os.getenv("BASE_URL", "http://localhost"),
        UPLOAD_DIRECTORY=os.getenv("UPLOAD_DIRECTORY", "."),
        DATABASE_URL=os.getenv("DATABASE_URL") or Settings.DATABASE_URL,
    )
    try:
        user = asyncio.run(create_user(settings, args.key))
    except IntegrityError:
        print("[create-user] A user with that key already exists", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"[create-user] {e}", file=sys.stderr)
        return 2
    print(f"[create-user] id={user.id}")
    print(user.key)
    return 0


if __name__ == "__main__":
    sys.exit(main())

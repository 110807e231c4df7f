import os
import subprocess
import sys

from sqlalchemy import create_engine, inspect

from keyshare.core.config import Settings

BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def sync_database_url(url: str) -> str:
    return url.replace("+aiosqlite", "")


def main():
    database_url = os.getenv("DATABASE_URL") or Settings.DATABASE_URL
    engine = create_engine(sync_database_url(database_url))
    insp = inspect(engine)

    has_alembic = insp.has_table("alembic_version")
    existing_core_tables = any(insp.has_table(t) for t in ("users", "uploads"))
    engine.dispose()

    alembic = ["alembic", "-c", os.path.join(BACKEND_DIR, "alembic.ini")]
    if existing_core_tables and not has_alembic:
        print("[db-migrate] Existing tables detected without alembic_version → stamping head")
        subprocess.run([*alembic, "stamp", "head"], check=True)
    else:
        print(f"[db-migrate] has_alembic={has_alembic}, existing_core_tables={existing_core_tables}")

    subprocess.run([*alembic, "upgrade", "head"], check=True)


if __name__ == "__main__":
    try:
        main()
    except subprocess.CalledProcessError as e:
        print(f"[db-migrate] Alembic command failed: {e}", file=sys.stderr)
        sys.exit(e.returncode)
    except Exception as e:
        print(f"[db-migrate] Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)

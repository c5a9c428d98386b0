"""
Apply db/schema.sql to the configured database.

Usage:
    python -m scripts.init_db
"""

from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from db.connection import get_db, transaction  # noqa: E402

SCHEMA_PATH = Path(__file__).resolve().parents[1] / "db" / "schema.sql"


def main():
    sql = SCHEMA_PATH.read_text(encoding="utf-8")
    print(f"Applying schema: {SCHEMA_PATH}")

    with get_db() as conn:
        with transaction(conn):
            with conn.cursor() as cur:
                cur.execute(sql)

    print("Schema applied")


if __name__ == "__main__":
    main()

import argparse
import os
import sqlite3
from pathlib import Path
from typing import Optional

TABLE_QUERIES = {
    "users": "SELECT id, google_id, name, email FROM users ORDER BY id",
    "progress": (
        "SELECT id, user_id, date, workout_name, calories, protein, carbs, fats, water "
        "FROM progress ORDER BY date DESC, id DESC LIMIT ?"
    ),
    "daily_plans": (
        "SELECT id, user_id, date, completed, workout_plan, diet_plan "
        "FROM daily_plans ORDER BY date DESC, id DESC LIMIT ?"
    ),
}


def resolve_db_path(override: Optional[str]) -> Path:
    if override:
        return Path(override).expanduser().resolve()
    env_path = os.getenv("DB_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path("./data/sweatfix.db").resolve()


def fetch_rows(conn: sqlite3.Connection, table: str, limit: int) -> list[sqlite3.Row]:
    sql = TABLE_QUERIES[table]
    params = () if table == "users" else (limit,)
    return conn.execute(sql, params).fetchall()


def _short(value: object, width: int = 60) -> str:
    text = "" if value is None else str(value).replace("\n", " ")
    return text if len(text) <= width else f"{text[: width - 3]}..."


def main() -> int:
    parser = argparse.ArgumentParser(description="Print users, progress and plans from the Sweat Fix SQLite DB.")
    parser.add_argument(
        "--table",
        action="append",
        choices=sorted(TABLE_QUERIES),
        default=[],
        help="Table to print (repeatable). Defaults to all.",
    )
    parser.add_argument("--limit", type=int, default=20, help="Max progress/plan rows to print.")
    parser.add_argument(
        "--db-path",
        default=None,
        help="Override SQLite DB path. Defaults to DB_PATH env or app default.",
    )
    args = parser.parse_args()

    db_path = resolve_db_path(args.db_path)
    if not db_path.exists():
        print(f"DB not found: {db_path}")
        return 1

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    try:
        print(f"Target DB: {db_path}")
        for table in args.table or list(TABLE_QUERIES):
            rows = fetch_rows(conn, table, args.limit)
            print(f"--- {table.upper()} ({len(rows)}) ---")
            for row in rows:
                print("  " + " | ".join(f"{key}={_short(row[key])}" for key in row.keys()))
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

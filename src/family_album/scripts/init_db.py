"""Utility script to create or reset the album's tables."""
from __future__ import annotations

import argparse

from family_album.core.settings import settings
from family_album.db.session import create_tables, drop_tables


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the configured album database")
    parser.add_argument(
        "--drop-tables",
        action="store_true",
        help="Drop every table before creating the schema again.",
    )
    args = parser.parse_args()

    if args.drop_tables:
        drop_tables()
        print("[init_db] dropped all tables")
    create_tables()
    settings.storage_root.mkdir(parents=True, exist_ok=True)
    print(f"[init_db] schema ready at {settings.effective_database_url}")


if __name__ == "__main__":
    main()

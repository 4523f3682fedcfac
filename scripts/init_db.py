#!/usr/bin/env python3
"""
Create the scores table and seed it with the given participant names.
"""
import os
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import road_to_italy.datastore_pg as pg  # noqa: E402
from road_to_italy.datastore import fetch_all_or_raise  # noqa: E402
from road_to_italy.models import StoreUnavailable  # noqa: E402


def main(argv=None) -> int:
    names = list(sys.argv[1:] if argv is None else argv)
    if not os.environ.get("DATABASE_URL"):
        print("ERROR: DATABASE_URL environment variable not set")
        return 1

    pg.create_table()
    print(f"Table {pg.table_name()} ready")

    inserted = pg.seed_participants(names)
    if inserted:
        print(f"Seeded {inserted} participants")
    elif names:
        print("Table already has participants; nothing seeded")

    try:
        people = fetch_all_or_raise()
    except StoreUnavailable as e:
        print(f"Error reading back participants: {e}")
        return 1

    print("\nSummary:")
    for p in people:
        print(f"- {p.id}: {p.name} ({p.distance:.2f} km)")
    return 0


if __name__ == "__main__":
    sys.exit(main())

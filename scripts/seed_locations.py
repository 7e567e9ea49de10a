#!/usr/bin/env python3
"""
Seed the administrative_units table from a JSON file.

The file holds {"administrative_units": [{id, name, level, parent_id}, ...]}
(the same shape `cocoa-connect --seed` reads). The hierarchy is checked
before anything is written; units are upserted on id, parents first.

Usage:
    python scripts/seed_locations.py scripts/data/sample_locations.json [--dry-run]
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from cocoa_connect.config import settings
from cocoa_connect.db.client import get_service_client
from cocoa_connect.db.store import SupabaseRecordStore
from onboarding.locations import AdministrativeUnit, check_hierarchy


async def seed_locations(path: Path, dry_run: bool = False) -> int:
    data = json.loads(path.read_text(encoding="utf-8"))
    units = [AdministrativeUnit.model_validate(u) for u in data.get("administrative_units", [])]

    problems = check_hierarchy(units)
    if problems:
        for problem in problems:
            print(f"  ❌ {problem}")
        return 1

    # Parents before children so foreign keys resolve
    units.sort(key=lambda u: u.level.depth)
    print(f"Seeding {len(units)} units into {settings.units_table}")

    if dry_run:
        for unit in units:
            print(f"  {unit.level.value:<11} {unit.id:<8} {unit.name}")
        return 0

    store = SupabaseRecordStore(get_service_client())
    for unit in units:
        await store.upsert(settings.units_table, unit.model_dump(mode="json"), on_conflict="id")
    print("✅ Done")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Seed administrative units into the database")
    parser.add_argument("path", type=Path, help="JSON seed file")
    parser.add_argument("--dry-run", action="store_true", help="Print what would be written")
    args = parser.parse_args()

    sys.exit(asyncio.run(seed_locations(args.path, dry_run=args.dry_run)))


if __name__ == "__main__":
    main()

"""Script to import the item catalog from a tab separated CSV file."""

import argparse
import asyncio
import csv
from pathlib import Path
from typing import Dict, List, Tuple

from sqlalchemy import select

from components.core.database import DatabaseManager
from components.item.models import Item, Location

REQUIRED_COLUMNS = ("ele_nombre", "ele_cantidad_total", "ubi_nombre")


def read_rows(csv_path: Path) -> Tuple[List[Dict], List[Dict]]:
    """
    Read and validate every row before touching the database.

    Returns the valid rows and a list of {row, message} errors.
    """
    rows, errors = [], []
    with open(csv_path, "r", encoding="utf-8") as f:
        reader = csv.DictReader(f, delimiter="\t")
        missing = [column for column in REQUIRED_COLUMNS if column not in (reader.fieldnames or [])]
        if missing:
            return [], [{"row": 1, "message": f"Missing columns: {', '.join(missing)}"}]

        for row_num, row in enumerate(reader, start=2):  # Start at 2 to account for header row
            name = (row["ele_nombre"] or "").strip()
            if not name:
                errors.append({"row": row_num, "message": "ele_nombre cannot be empty"})
                continue
            try:
                total = int(row["ele_cantidad_total"])
            except (TypeError, ValueError):
                errors.append({"row": row_num, "message": f"Invalid quantity: {row['ele_cantidad_total']}"})
                continue
            if total < 0:
                errors.append({"row": row_num, "message": "Quantity cannot be negative"})
                continue
            rows.append({
                "name": name,
                "total": total,
                "location": (row["ubi_nombre"] or "").strip() or None,
            })
    return rows, errors


async def import_items(db_manager: DatabaseManager, csv_path: Path) -> None:
    """Insert the items of the file, creating missing locations."""
    rows, errors = read_rows(csv_path)
    if errors:
        for error in errors:
            print(f"  Row {error['row']}: {error['message']}")
        raise SystemExit("Validation errors occurred, nothing imported.")

    async with db_manager.transaction() as db:
        result = await db.execute(select(Location))
        locations = {location.name: location for location in result.scalars().all()}

        for row in rows:
            location = None
            if row["location"]:
                location = locations.get(row["location"])
                if location is None:
                    location = Location(name=row["location"])
                    db.add(location)
                    await db.flush()
                    locations[location.name] = location
            db.add(Item(
                name=row["name"],
                total_quantity=row["total"],
                current_quantity=row["total"],
                location_id=location.id if location else None,
            ))

    print(f"Imported {len(rows)} items.")


async def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("csv_path", type=Path, help="Tab separated file with ele_nombre, ele_cantidad_total, ubi_nombre")
    args = parser.parse_args()

    db_manager = DatabaseManager()
    try:
        await import_items(db_manager, args.csv_path)
    finally:
        await db_manager.dispose()


if __name__ == "__main__":
    asyncio.run(main())

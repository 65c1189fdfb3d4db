# clinic/backup.py
"""backup.py: export the whole store as a timestamped JSON snapshot.

Usage:
  python -m clinic.backup              # write ./backups/clinic-YYYYmmddHHMMSS.json
  python -m clinic.backup --keep 7     # keep 7 days of snapshots
  python -m clinic.backup --dry-run    # show what would happen

Env / .env variables:
  SQL_DSN, BACKUP_DIR (default: ./backups), KEEP_DAYS (default: 14)
"""
from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import os
from pathlib import Path

from clinic.db.snapshot import read_snapshot
from clinic.db.sql import AsyncSessionLocal, engine, init_db

PREFIX = "clinic"


def rotate_backups(backup_dir: Path, keep_days: int) -> list[Path]:
    """
    Delete *.json snapshot files older than keep_days days.
    """
    cutoff = dt.datetime.now() - dt.timedelta(days=keep_days)
    removed: list[Path] = []

    for f in sorted(backup_dir.glob(f"{PREFIX}-*.json")):
        try:
            # file name format: clinic-YYYYmmddHHMMSS.json
            ts = dt.datetime.strptime(f.stem.split("-")[-1], "%Y%m%d%H%M%S")
        except ValueError:
            # If the name is not in the correct format, ignore it.
            continue

        if ts < cutoff:
            f.unlink(missing_ok=True)
            removed.append(f)

    return removed


async def export_snapshot(path: Path) -> int:
    """
    Write the snapshot to path; returns the number of records written.
    """
    await init_db()
    async with AsyncSessionLocal() as session:
        snapshot = await read_snapshot(session)
    await engine.dispose()

    path.write_text(snapshot.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    return len(snapshot.users) + len(snapshot.appointments)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Clinic store backup creator")
    parser.add_argument(
        "--keep", type=int, default=None,
        help="days to keep backups (override KEEP_DAYS)",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="show what would happen without executing",
    )
    args = parser.parse_args(argv)

    backup_dir = Path(os.getenv("BACKUP_DIR", "./backups")).resolve()
    keep_days = int(args.keep if args.keep is not None else os.getenv("KEEP_DAYS", 14))

    backup_dir.mkdir(parents=True, exist_ok=True)

    ts = dt.datetime.now().strftime("%Y%m%d%H%M%S")
    out_path = backup_dir / f"{PREFIX}-{ts}.json"

    print(f"[backup] Output: {out_path}")
    print(f"[backup] Keep days: {keep_days} (rotation before backup)")

    removed = rotate_backups(backup_dir, keep_days)
    if removed:
        print("[backup] Rotated (deleted old):")
        for p in removed:
            print("  -", p.name)

    if args.dry_run:
        print("[backup] DRY RUN, nothing exported")
        return 0

    count = asyncio.run(export_snapshot(out_path))
    print(f"[backup] Done. {count} records, {out_path.stat().st_size} bytes")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

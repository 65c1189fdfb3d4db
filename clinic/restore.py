"""restore.py: replace the store with a JSON snapshot.

Usage:
  python -m clinic.restore                    # restore from latest backup file
  python -m clinic.restore --file path.json   # restore from specific file
  python -m clinic.restore --yes              # non-interactive (auto-confirm)

Env / .env variables:
  SQL_DSN, BACKUP_DIR (default: ./backups)
"""

# clinic/restore.py
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from clinic.backup import PREFIX
from clinic.db.snapshot import Snapshot, replace_snapshot
from clinic.db.sql import AsyncSessionLocal, engine, init_db


def latest_backup(dir: Path) -> Path | None:
    cand = sorted(dir.glob(f"{PREFIX}-*.json"), key=lambda p: p.name, reverse=True)
    return cand[0] if cand else None


def load_snapshot(src: Path) -> Snapshot:
    return Snapshot.model_validate_json(src.read_text(encoding="utf-8"))


async def import_snapshot(snapshot: Snapshot) -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        try:
            await replace_snapshot(session, snapshot)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Clinic store restore tool")
    parser.add_argument("--file", type=str, help="snapshot file (.json) to restore from")
    parser.add_argument("--yes", action="store_true", help="Automatically confirm without prompt")
    args = parser.parse_args(argv)

    backup_dir = Path(os.getenv("BACKUP_DIR", "./backups")).resolve()
    backup_dir.mkdir(parents=True, exist_ok=True)

    # Determine backup file
    if args.file:
        src = Path(args.file).resolve()
    else:
        src = latest_backup(backup_dir)
        if not src:
            raise SystemExit(f"[restore] No backups found in: {backup_dir}")

    if not src.exists() or src.suffix != ".json":
        raise SystemExit(f"[restore] File invalid or not .json: {src}")

    try:
        snapshot = load_snapshot(src)
    except ValidationError as exc:
        sys.stderr.write(f"[restore] Snapshot is malformed:\n{exc}\n")
        return 1

    print(f"[restore] Restoring from: {src}")
    print(f"[restore] {len(snapshot.users)} users, {len(snapshot.appointments)} appointments")

    if not args.yes:
        ans = input("WARNING: This will replace every user and appointment. Continue? [y/N]: ").strip().lower()
        if ans != "y":
            print("[restore] Aborted.")
            return 0

    asyncio.run(import_snapshot(snapshot))
    print("[restore] SUCCESS.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

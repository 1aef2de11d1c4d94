#!/usr/bin/env python3
"""
Blob storage cleanup

Lists every announcement clip and the ones older than ``--days``.
Nothing is deleted unless ``--apply`` is given.
"""

from __future__ import annotations

import argparse
import datetime as _dt
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from announcer.api.blob_store import BlobStoreClient, BlobStoreError, ConfigError, NotFoundError
from announcer.constants import BLOB_PREFIX

DEFAULT_DAYS_TO_KEEP = 30


def _parse_uploaded_at(value: Optional[str]) -> Optional[_dt.datetime]:
    if not value:
        return None
    try:
        parsed = _dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_dt.timezone.utc)
    return parsed


def find_stale(entries: List[Dict[str, Any]], days: int, now: Optional[_dt.datetime] = None) -> List[Dict[str, Any]]:
    """Entries uploaded strictly before ``now - days``."""
    now = now or _dt.datetime.now(tz=_dt.timezone.utc)
    cutoff = now - _dt.timedelta(days=days)
    stale = []
    for entry in entries:
        uploaded = _parse_uploaded_at(entry.get("uploaded_at"))
        if uploaded is not None and uploaded < cutoff:
            stale.append(entry)
    return stale


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="List (and optionally delete) old announcement clips")
    parser.add_argument("--days", type=int, default=DEFAULT_DAYS_TO_KEEP,
                        help=f"Keep clips newer than this many days (default {DEFAULT_DAYS_TO_KEEP})")
    parser.add_argument("--prefix", default=BLOB_PREFIX, help="Blob folder to inspect")
    parser.add_argument("--apply", action="store_true", help="Actually delete the stale clips")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None, client: Optional[BlobStoreClient] = None) -> int:
    load_dotenv()
    args = _parse_args(argv)
    client = client or BlobStoreClient(prefix=args.prefix)

    try:
        print("🔍 Fetching all files from blob storage...")
        entries = client.list(prefix=args.prefix)
    except ConfigError:
        print("❌ BLOB_READ_WRITE_TOKEN environment variable is required", file=sys.stderr)
        return 1
    except BlobStoreError as exc:
        print(f"❌ Error during cleanup: {exc}", file=sys.stderr)
        return 1

    if not entries:
        print(f"✅ No files found in {args.prefix}")
        return 0

    print(f"📁 Found {len(entries)} files:")
    for position, entry in enumerate(entries, start=1):
        print(f"{position}. {entry['id']} ({entry.get('size')} bytes, uploaded: {entry.get('uploaded_at')})")

    stale = find_stale(entries, args.days)
    if not stale:
        print(f"✅ No files older than {args.days} days found")
        return 0

    print(f"\n🗑️  Found {len(stale)} files older than {args.days} days:")
    for position, entry in enumerate(stale, start=1):
        print(f"{position}. {entry['id']} (uploaded: {entry.get('uploaded_at')})")

    if not args.apply:
        print("\n💡 Re-run with --apply to delete these files")
        print("⚠️  WARNING: Deletion is permanent and cannot be undone!")
        return 0

    failures = 0
    print("\n⚠️  Deleting old files...")
    for entry in stale:
        try:
            client.delete(entry["url"])
            print(f"✅ Deleted: {entry['id']}")
        except NotFoundError:
            print(f"✅ Already gone: {entry['id']}")
        except BlobStoreError as exc:
            failures += 1
            print(f"❌ Failed to delete {entry['id']}: {exc}", file=sys.stderr)
    print("🎉 Cleanup completed!")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())

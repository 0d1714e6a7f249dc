#!/usr/bin/env python3
"""
TV Wall • Batch Uploader
========================

CLI helper to upload one or more .mp4 clips to a display's store with an
optional validity policy, then print per-file results and totals.

Examples
--------
1) Upload two clips valid for 15 days:
    python scripts/uploader.py --store 192.168.1.100:3000 --days 15 a.mp4 b.mp4

2) Upload with an absolute expiration date:
    python scripts/uploader.py --store http://tv1.local:3000 --until 2025-12-31 promo.mp4
"""

import argparse
import asyncio
import os
import sys

from tvwall.core import logger as _logsetup  # noqa: F401
from tvwall.console.client import StoreClient, upload_many


async def _upload(store: str, files, policy) -> int:
    async with StoreClient(store) as client:
        batch = await upload_many(client, files, policy=policy)
    for item in batch.items:
        if item.ok:
            print(f"OK    {item.name} -> {item.result.filename} (expires {item.result.prazoValidade})")
        else:
            print(f"FAIL  {item.name}: {item.reason}", file=sys.stderr)
    print(batch.summary())
    return 0 if batch.failed == 0 else 1


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("files", nargs="+", help="Clips to upload (.mp4)")
    ap.add_argument("--store", required=True, help="Store address (e.g., 192.168.1.100:3000)")
    group = ap.add_mutually_exclusive_group()
    group.add_argument("--days", type=int, help="Validity in days from now")
    group.add_argument("--until", help="Absolute expiration date (YYYY-MM-DD)")
    args = ap.parse_args()

    missing = [f for f in args.files if not os.path.isfile(f)]
    if missing:
        print(f"Not a file: {', '.join(missing)}", file=sys.stderr)
        sys.exit(2)

    policy = args.days if args.days is not None else args.until
    sys.exit(asyncio.run(_upload(args.store, args.files, policy)))


if __name__ == "__main__":
    main()

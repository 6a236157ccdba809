"""
Refresh quotes once, outside the running service.

Usage:
    python scripts/refresh_quotes.py                 # both lists, only if stale
    python scripts/refresh_quotes.py --force         # both lists, always
    python scripts/refresh_quotes.py --kind watchlist --force
"""
from pathlib import Path
import argparse
import asyncio
import os
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from app.logging import setup_logging
from app.pipeline.models import ListKind
from app.pipeline.orchestrator import get_tracker


async def _run(kinds: list[ListKind], force: bool):
    tracker = get_tracker()
    for kind in kinds:
        out = await tracker.refresh(kind, force=force)
        print(f"{kind.value}: {out.status.value} ({len(out.quotes)} quotes, logged_today={out.logged_today})")


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument("--kind", choices=[k.value for k in ListKind])
    parser.add_argument("--force", action="store_true")
    parser.add_argument("--log-level", default=None, help="overrides LOG_LEVEL")
    args = parser.parse_args()
    setup_logging(args.log_level)
    kinds = [ListKind(args.kind)] if args.kind else list(ListKind)
    asyncio.run(_run(kinds, args.force))

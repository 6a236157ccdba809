#!/usr/bin/env python3
"""
Delete the whole local price history (every symbol, every day).

Quotes, holdings, the watchlist and dividend records are left alone.

Usage:
    python scripts/reset_price_history.py           # dry run (print only)
    python scripts/reset_price_history.py --execute # actually delete
"""
from pathlib import Path
import os
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from app.pipeline.orchestrator import get_tracker


if __name__ == '__main__':
    tracker = get_tracker()
    price_log = tracker.state.load_price_log()
    for symbol in price_log.symbols():
        print(f"{symbol}: {price_log.day_count(symbol)} days")
    if "--execute" not in sys.argv:
        print(f"Dry run: {len(price_log)} entries would be deleted. Pass --execute to delete.")
        sys.exit(0)
    tracker.reset_history()
    print(f"Deleted {len(price_log)} entries.")

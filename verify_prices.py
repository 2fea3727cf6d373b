#!/usr/bin/env python3
"""
Quick sanity check script to verify live prices are reaching the holdings table.

Usage:
    python verify_prices.py [path/to/portfolio.db]

This script:
1. Checks if the database exists
2. Counts holdings per asset type and how many have a price
3. Shows the most recently priced holdings
4. Verifies update timestamps are advancing (polling/streaming is working)
"""

import asyncio
import sys
import time
from pathlib import Path

import aiosqlite


async def verify_database(db_path: str = "data/portfolio.db"):
    """Verify the database and show recent price updates."""

    db_file = Path(db_path)
    if not db_file.exists():
        print(f"❌ Database not found at: {db_path}")
        print("   → Make sure the core API has been started at least once.")
        return False

    print(f"✅ Database exists: {db_path}\n")

    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row

        cursor = await db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='holdings'"
        )
        if not await cursor.fetchone():
            print("❌ 'holdings' table not found. Database may be corrupted.")
            return False

        print("✅ 'holdings' table exists\n")

        cursor = await db.execute("""
            SELECT asset_type,
                   COUNT(*) AS total,
                   SUM(CASE WHEN current_price IS NOT NULL AND current_price > 0 THEN 1 ELSE 0 END) AS priced
            FROM holdings
            GROUP BY asset_type
            ORDER BY asset_type
        """)
        rows = await cursor.fetchall()

        if not rows:
            print("⚠️  No holdings in database yet.")
            print("   → Add holdings before expecting price updates.")
            return False

        print("📊 Holdings by asset type:")
        print("-" * 50)
        print(f"{'Asset type':<15} {'Holdings':>10} {'Priced':>10}")
        print("-" * 50)
        for row in rows:
            print(f"{row['asset_type']:<15} {row['total']:>10} {row['priced']:>10}")
        print("-" * 50)
        print()

        cursor = await db.execute("""
            SELECT symbol, asset_type, current_price, updated_at
            FROM holdings
            WHERE updated_at IS NOT NULL
            ORDER BY updated_at DESC
            LIMIT 10
        """)
        recent = await cursor.fetchall()

        if not recent:
            print("⚠️  No holding has been priced yet.")
            print("   → Check core API logs for provider errors")
            return False

        print("🕐 Most recently priced holdings:")
        print("-" * 70)
        print(f"{'Symbol':<15} {'Type':<12} {'Updated':<22} {'Price':>16}")
        print("-" * 70)
        for row in recent:
            ts_str = time.strftime('%Y-%m-%d %H:%M:%S', time.gmtime(row['updated_at']))
            print(f"{row['symbol']:<15} {row['asset_type']:<12} {ts_str:<22} {row['current_price']:>16.4f}")
        print("-" * 70)
        print()

        age_seconds = time.time() - recent[0]['updated_at']
        print(f"⏱️  Latest update age: {age_seconds:.0f} seconds\n")

        if age_seconds < 60:
            print("✅ Prices are LIVE (updated within the last minute)")
        elif age_seconds < 900:
            print(f"⚠️  Prices may be stalled. Latest update is {age_seconds / 60:.1f} minutes old.")
            print("   → Note: prices only change in storage when the upstream value changes")
        else:
            print(f"❌ Price updates appear STOPPED. Latest update is {age_seconds / 3600:.1f} hours old.")
            print("   → Restart the core API to resume polling")

        return True


async def main():
    """Main entry point."""
    print("=" * 60)
    print("Livefolio - Price Verification")
    print("=" * 60)
    print()

    db_path = sys.argv[1] if len(sys.argv) > 1 else "data/portfolio.db"
    success = await verify_database(db_path)

    print()
    print("=" * 60)

    if success:
        print("✅ Verification complete!")
    else:
        print("⚠️  Issues found. See messages above.")

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    asyncio.run(main())

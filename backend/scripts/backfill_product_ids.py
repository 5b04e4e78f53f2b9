"""
Pharma Field Sales - Maintenance: give every product without a product_id
the next PROD#### number.
Run: cd backend && python3 scripts/backfill_product_ids.py
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import client
from services.product_catalog import backfill_product_ids


async def main():
    assigned = await backfill_product_ids()

    if not assigned:
        print("All products already have a product_id")
    for row in assigned:
        print(f"  {row['product_id']}  {row['name']}")
    print(f"\n{len(assigned)} product id(s) assigned")

    client.close()


if __name__ == "__main__":
    asyncio.run(main())

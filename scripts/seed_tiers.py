"""
Seed the default income-range loan limit tiers.
Run: python -m scripts.seed_tiers (from the project root).
"""
import asyncio
import logging
import os
import sys
from decimal import Decimal

# Add parent so we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from database import AsyncSessionLocal, init_db
from models import LoanLimitTier

logger = logging.getLogger(__name__)

TIERS_DATA = [
    {
        "id": "tier-1k-20k",
        "tier_name": "Entry",
        "income_range": "1k-20k",
        "min_salary": Decimal("1000"),
        "max_salary": Decimal("20000"),
        "loan_limit": Decimal("0"),
        "hold_permanent": True,
        "tier_order": 1,
    },
    {
        "id": "tier-20k-30k",
        "tier_name": "Bronze",
        "income_range": "20k-30k",
        "min_salary": Decimal("20000"),
        "max_salary": Decimal("30000"),
        "loan_limit": Decimal("8000"),
        "hold_permanent": False,
        "tier_order": 2,
    },
    {
        "id": "tier-30k-40k",
        "tier_name": "Silver",
        "income_range": "30k-40k",
        "min_salary": Decimal("30000"),
        "max_salary": Decimal("40000"),
        "loan_limit": Decimal("12000"),
        "hold_permanent": False,
        "tier_order": 3,
    },
    {
        "id": "tier-above-40k",
        "tier_name": "Gold",
        "income_range": "above-40k",
        "min_salary": Decimal("40000"),
        "max_salary": None,
        "loan_limit": Decimal("20000"),
        "hold_permanent": False,
        "tier_order": 4,
    },
]


async def seed():
    await init_db()
    async with AsyncSessionLocal() as session:
        for data in TIERS_DATA:
            existing = await session.execute(
                select(LoanLimitTier).where(LoanLimitTier.income_range == data["income_range"])
            )
            if existing.scalar_one_or_none():
                logger.info("Tier %s already exists, skipping", data["income_range"])
                continue
            session.add(LoanLimitTier(is_active=True, **data))
            logger.info("Seeded tier: %s (%s)", data["tier_name"], data["income_range"])
        await session.commit()
    logger.info("Seed complete.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    asyncio.run(seed())

"""
Eagerly reset usage quotas whose monthly period has ended.

Optional operational job (e.g. a nightly cron). Quotas also reset lazily on
the next request, so skipping a run never affects enforcement.

Usage:
    python -m scripts.reset_expired_quotas
"""

import asyncio
import logging

from aisaas.config.settings import settings
from aisaas.infrastructure.db.database import close_db
from aisaas.infrastructure.services.quota_store import get_quota_store


logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def main():
    """Run the batch reset."""
    logger.info("Resetting expired quotas...")

    try:
        count = await get_quota_store().reset_expired_quotas()
        logger.info(f"Done: {count} quotas reset")
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())

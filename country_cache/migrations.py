"""Startup schema applier.

Creates every table declared on ``Base`` and seeds the refresh status
singleton. Running it against an up-to-date database changes nothing.

Usage:
    python -m country_cache.migrations
"""

import logging
import sys

from sqlalchemy import insert, select

from country_cache.database import Base, acquire
from country_cache.models import STATUS_ROW_ID, RefreshStatus

logger = logging.getLogger(__name__)


def apply_schema():
    engine = acquire()
    try:
        with engine.begin() as conn:
            Base.metadata.create_all(bind=conn)

            seeded = conn.execute(
                select(RefreshStatus.id).where(RefreshStatus.id == STATUS_ROW_ID)
            ).first()
            if seeded is None:
                conn.execute(
                    insert(RefreshStatus).values(id=STATUS_ROW_ID, last_refreshed_at=None)
                )
    except Exception:
        logger.exception("Failed to apply database schema")
        raise

    logger.info("Database schema applied successfully")


def main():
    from country_cache.logging_config import configure_logging

    configure_logging()
    try:
        apply_schema()
    except Exception:
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Delete outcome documents older than N days.

    python -m fc_ingestion.scripts.prune_outcomes --days 30
"""
import argparse
import asyncio
import sys

from fc_ingestion.core.config import settings
from fc_ingestion.core.exceptions import FatalConfigError, TransientError
from fc_ingestion.core.logger import logger
from fc_ingestion.core.mongo_client import MongoClientManager
from fc_ingestion.services.data_service import RecordStore


async def prune(days: float) -> int:
    mongo = MongoClientManager(settings)
    try:
        return await RecordStore(mongo.collection).prune_older_than(days)
    finally:
        mongo.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--days", type=float, required=True, help="age threshold in days")
    args = parser.parse_args(argv)

    if args.days < 0:
        parser.error("--days must be non-negative")

    try:
        deleted = asyncio.run(prune(args.days))
    except FatalConfigError as e:
        logger.error(f"Refusing to prune: {e}")
        return 1
    except TransientError as e:
        logger.error(f"Prune failed: {e}")
        return 2

    print(f"Deleted {deleted} outcome documents older than {args.days} days")
    return 0


if __name__ == "__main__":
    sys.exit(main())

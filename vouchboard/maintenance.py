"""
vouchboard.maintenance — One-off data maintenance
==================================================

Run with::

    python -m vouchboard.maintenance repair-products

``repair-products`` normalizes the configured guild's product catalog (see
:func:`vouchboard.engine.products.repair_products`): missing/non-numeric
ids get their position, duplicate ids are dropped, text fields are
stripped, prices coerced.  Safe to run repeatedly.
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from vouchboard.config import load_config
from vouchboard.database.engine import create_db_engine
from vouchboard.errors import NotFoundError, StorageError
from vouchboard.services.product_service import repair_guild_products

logger = logging.getLogger("vouchboard.maintenance")


def repair_products_command(guild_id: str | None = None) -> int:
    """Repair one guild's catalog.  Returns a process exit code."""
    cfg = load_config()
    guild_id = guild_id or cfg.guild_id
    engine = create_db_engine()
    try:
        before, after = repair_guild_products(engine, guild_id)
    except NotFoundError:
        logger.warning("No document found for guild %s; nothing to repair.", guild_id)
        return 0
    except StorageError:
        logger.error("Repair failed for guild %s (see log above).", guild_id)
        return 1
    finally:
        engine.dispose()

    logger.info("Found %d products; %d kept after repair.", before, after)
    return 0


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )
    load_dotenv()

    parser = argparse.ArgumentParser(prog="python -m vouchboard.maintenance")
    sub = parser.add_subparsers(dest="command", required=True)
    repair = sub.add_parser("repair-products", help="Fix product ids and fields")
    repair.add_argument("--guild-id", help="Override the configured guild id")

    args = parser.parse_args(argv)
    if args.command == "repair-products":
        return repair_products_command(args.guild_id)
    return 2


if __name__ == "__main__":
    sys.exit(main())

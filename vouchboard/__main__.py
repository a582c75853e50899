"""
vouchboard.__main__ — Entry point for ``python -m vouchboard``
==============================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml + env overrides.
3. Create the SQLAlchemy engine and ensure tables exist.
4. Serve the FastAPI app with uvicorn on the configured port.
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from vouchboard.config import load_config
from vouchboard.database.engine import create_db_engine, init_db

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("vouchboard")


def main() -> None:
    """Bootstrap and serve the site."""
    load_dotenv()

    cfg = load_config()
    logger.info("Config loaded — guild %s, port %d", cfg.guild_id, cfg.port)

    engine = create_db_engine()
    init_db(engine)
    engine.dispose()

    logger.info("Site starting on http://localhost:%d", cfg.port)
    uvicorn.run("vouchboard.api.main:app", host="0.0.0.0", port=cfg.port, log_config=None)


if __name__ == "__main__":
    main()

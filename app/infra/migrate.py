from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"


def run_upgrade_head(ini_path: Path = ALEMBIC_INI) -> None:
    config = Config(str(ini_path))
    config.set_main_option("script_location", str(ini_path.parent / "infra" / "migrations"))
    config.attributes["configure_logger"] = False
    logger.info("Upgrading drafts/reports schema to head using %s", ini_path)
    command.upgrade(config, "head")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_upgrade_head()

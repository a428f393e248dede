from __future__ import annotations

"""
Bootstrap production/staging safely (no DROP), idempotent:

1) Alembic upgrade head
2) Register the system pages that are missing (HOME, ABOUT, 404, ...)

Run on Heroku:
    heroku run --app <your-app> python -m scripts.bootstrap_prod
"""

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

# Ensure repo root on sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from contentcore.core.logging import configure_logging
from scripts.bootstrap_system_pages import run as bootstrap_system_pages


def _alembic_upgrade_head() -> None:
    ini_path = (ROOT / "alembic.ini").as_posix()
    cfg = Config(ini_path)
    command.upgrade(cfg, "head")
    print("Alembic upgrade head OK")


def main() -> None:
    configure_logging()
    _alembic_upgrade_head()
    bootstrap_system_pages(author_id=1)
    print("Bootstrap finished")


if __name__ == "__main__":
    main()

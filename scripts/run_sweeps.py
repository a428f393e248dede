# scripts/run_sweeps.py
# Para Heroku Scheduler / cron del sistema:
#     python -m scripts.run_sweeps
from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy.orm import Session

from contentcore.api.deps.engines import build_page_engine, build_post_engine
from contentcore.core.logging import configure_logging
from contentcore.core.settings import settings
from contentcore.db.session import SessionLocal
from contentcore.services.sweep_service import run_sweeps


def run() -> bool:
    pages, posts = build_page_engine(), build_post_engine()
    db: Session = SessionLocal()
    try:
        results = run_sweeps(db, pages, posts)
    finally:
        db.close()

    for name, r in results.items():
        if r["ok"]:
            print(f"[OK] {name}: {r['result']}")
        else:
            print(f"[FAIL] {name}: {r['error']}")
    return all(r["ok"] for r in results.values())


if __name__ == "__main__":
    configure_logging(debug=settings.DEBUG)
    sys.exit(0 if run() else 1)

# scripts/bootstrap_system_pages.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# --- Ensure repo root is on sys.path so "contentcore.*" imports work when run as a script
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy.orm import Session

from contentcore.api.deps.engines import build_page_engine
from contentcore.core.logging import configure_logging
from contentcore.db.session import SessionLocal


def run(author_id: int) -> int:
    """Registers the missing system pages. Returns how many were created."""
    engine = build_page_engine()
    db: Session = SessionLocal()
    try:
        regs = engine.bootstrap_system_pages(db, author_id=author_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    created = [r for r in regs if not r.is_registered]
    for r in regs:
        mark = "SKIP" if r.is_registered else "OK"
        print(f"[{mark}] {r.key:<18} /{r.slug}")
    if not regs:
        print("[SKIP] auto_register_system_pages is off")
    print(f"System pages created: {len(created)} / {len(regs)}")
    return len(created)


def main():
    ap = argparse.ArgumentParser(
        description="Create every system page that does not exist yet (idempotent).",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    ap.add_argument("--author-id", type=int, default=1, help="User id recorded as author")
    ap.add_argument("--debug", action="store_true", help="Verbose logging")
    args = ap.parse_args()

    configure_logging(debug=args.debug)
    run(author_id=args.author_id)


if __name__ == "__main__":
    main()

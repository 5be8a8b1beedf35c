# liability_engine/cli/__main__.py
from __future__ import annotations

import argparse
import json
import logging

from ..db import SessionLocal, init_db
from ..logging_config import configure_logging
from ..services.tenant_approval import reconcile_lapsed_approvals

log = logging.getLogger(__name__)


def _reconcile(org_id: int | None, dry_run: bool) -> list[int]:
    db = SessionLocal()
    try:
        changed = reconcile_lapsed_approvals(db, org_id=org_id)
        if dry_run:
            db.rollback()
        else:
            db.commit()
        return changed
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="liability_engine")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db", help="create all tables in DATABASE_URL")

    rec = sub.add_parser("reconcile-approvals", help="mark lapsed pending tenant reviews as approved")
    rec.add_argument("--org-id", type=int, default=None)
    rec.add_argument("--dry-run", action="store_true")

    args = p.parse_args(argv)
    configure_logging()

    if args.cmd == "init-db":
        init_db()
        print(json.dumps({"ok": True, "cmd": "init-db"}))
        return

    changed = _reconcile(args.org_id, args.dry_run)
    print(json.dumps({"ok": True, "cmd": "reconcile-approvals", "dry_run": args.dry_run, "inspection_ids": changed}))


if __name__ == "__main__":
    main()

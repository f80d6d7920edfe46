"""Send rota reminder e-mails for today.

Run once a day (cron, systemd timer) from the backend environment. Re-running on the
same day is safe: already-delivered reminders are skipped via reminder_log.

Env:
  - DATABASE_URL
  - EMAIL_SERVICE_URL / EMAIL_SERVICE_SECRET
  - REFERENCE_TIMEZONE (calendar days are counted in this zone)

For manual testing:
  - DRY_RUN=1 will not send or log, only print matches
  - FORCE_EMAIL=<address> sends every match to this address instead (not logged)
"""

from __future__ import annotations

import logging
import os

from rotahub.core.db import SessionLocal
from rotahub.services.reminders import run_reminder_sweep

DRY_RUN = os.getenv("DRY_RUN", "").strip() in ("1", "true", "yes")
FORCE_EMAIL = os.getenv("FORCE_EMAIL") or None


def main() -> int:
    with SessionLocal() as db:
        result = run_reminder_sweep(db, dry_run=DRY_RUN, force_email=FORCE_EMAIL)

    print(
        f"sent={result.sent} skipped={result.skipped} failed={result.failed} "
        f"assignments={result.total_assignments}" + (f" matched={result.matched}" if DRY_RUN else "")
    )
    for err in result.errors:
        print(f"  failed: {err['contact']} {err['event']!r} days_ahead={err['daysAhead']}: {err['error']}")
    return 1 if result.failed else 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    raise SystemExit(main())

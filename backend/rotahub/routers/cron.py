from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from rotahub.core.config import settings
from rotahub.core.db import get_db
from rotahub.services.reminders import run_reminder_sweep

router = APIRouter(prefix="/cron", tags=["cron"])

log = logging.getLogger("rotahub.cron")


def _require_cron_secret(request: Request) -> None:
    expected = settings.REMINDER_CRON_SECRET
    if not expected:
        log.error("REMINDER_CRON_SECRET is not configured")
        raise HTTPException(status_code=500, detail="REMINDER_CRON_SECRET is not configured")

    got = request.headers.get("X-Cron-Secret") or request.query_params.get("secret") or ""
    if got != expected:
        log.warning("rota reminders: bad secret")
        raise HTTPException(status_code=401, detail="bad secret")


@router.api_route("/rota-reminders", methods=["GET", "POST"])
def rota_reminders(request: Request, db: Session = Depends(get_db)):
    """Run today's reminder sweep. Safe to call more than once a day."""
    _require_cron_secret(request)

    results = run_reminder_sweep(db)
    return {
        "ok": True,
        "results": results.as_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

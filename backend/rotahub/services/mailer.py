from __future__ import annotations

import html
import json
import logging
import urllib.request
from dataclasses import dataclass
from typing import Callable

from rotahub.core.config import settings
from rotahub.core.timezones import reference_tz
from rotahub.errors import EmailDispatchError

log = logging.getLogger("rotahub.mailer")


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body_html: str
    body_text: str


# send(message) -> provider message id; raises EmailDispatchError
SendFn = Callable[[EmailMessage], str]


def send(message: EmailMessage) -> str:
    """Deliver through the e-mail relay at EMAIL_SERVICE_URL.

    Returns the relay's message id. Raises EmailDispatchError on any failure so the
    caller can decide whether to retry.
    """
    svc_url = settings.EMAIL_SERVICE_URL
    if not svc_url:
        raise EmailDispatchError("EMAIL_SERVICE_URL is not configured")

    payload = json.dumps(
        {
            "from": settings.EMAIL_FROM,
            "to": message.to,
            "subject": message.subject,
            "html": message.body_html,
            "text": message.body_text,
        },
        ensure_ascii=False,
    ).encode("utf-8")
    req = urllib.request.Request(
        svc_url.rstrip("/") + "/send",
        data=payload,
        method="POST",
        headers={
            "Content-Type": "application/json",
            **({"X-Email-Secret": settings.EMAIL_SERVICE_SECRET} if settings.EMAIL_SERVICE_SECRET else {}),
        },
    )
    try:
        with urllib.request.urlopen(req, timeout=10) as resp:
            body = resp.read().decode("utf-8", errors="ignore")
            if not 200 <= resp.status < 300:
                log.warning("email relay failed status=%s body=%s", resp.status, body[:300])
                raise EmailDispatchError(f"email relay returned {resp.status}")
    except OSError as e:
        raise EmailDispatchError(f"email relay unreachable: {e}") from e

    try:
        js = json.loads(body) if body else {}
    except ValueError:
        js = {}
    return str(js.get("id") or "")


def _when(starts_at, all_day: bool = False) -> tuple[str, str]:
    local = starts_at.astimezone(reference_tz())
    day = local.strftime("%A %d %B %Y").replace(" 0", " ")
    return day, ("All day" if all_day else local.strftime("%H:%M"))


def render_rota_reminder(
    *,
    to: str,
    first_name: str,
    event_title: str,
    role: str,
    starts_at,
    location: str,
    days_ahead: int,
    all_day: bool = False,
) -> EmailMessage:
    day, time_str = _when(starts_at, all_day)
    lead = "tomorrow" if days_ahead == 1 else f"in {days_ahead} days"
    org = settings.ORG_NAME or "your team"
    link = settings.HUB_BASE_URL.rstrip("/") + "/myhub/rotas" if settings.HUB_BASE_URL else ""

    subject = f"Reminder: {role} at {event_title} {lead}"
    greeting = f"Hi {first_name}," if first_name else "Hi,"
    lines = [
        greeting,
        "",
        f"This is a reminder from {org} that you are on the rota as {role} for {event_title} {lead}.",
        "",
        f"Date: {day}",
        f"Time: {time_str}",
    ]
    if location:
        lines.append(f"Location: {location}")
    if link:
        lines += ["", f"View your rotas: {link}"]
    text = "\n".join(lines)

    e = html.escape
    rows = [
        f"<p>{e(greeting)}</p>",
        f"<p>This is a reminder from {e(org)} that you are on the rota as <strong>{e(role)}</strong> "
        f"for <strong>{e(event_title)}</strong> {e(lead)}.</p>",
        "<ul>",
        f"<li>Date: {e(day)}</li>",
        f"<li>Time: {e(time_str)}</li>",
    ]
    if location:
        rows.append(f"<li>Location: {e(location)}</li>")
    rows.append("</ul>")
    if link:
        rows.append(f'<p><a href="{e(link)}">View your rotas</a></p>')

    return EmailMessage(to=to, subject=subject, body_html="\n".join(rows), body_text=text)

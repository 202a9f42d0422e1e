import logging

import httpx

from hardtrack.config import settings

logger = logging.getLogger(__name__)


def reminder_html(display_name: str) -> str:
    return f"""<!DOCTYPE html>
<html>
  <body style="font-family: system-ui, sans-serif; background-color: #0a0a0a; color: #fafafa; padding: 40px 20px;">
    <div style="max-width: 500px; margin: 0 auto;">
      <h1 style="text-align: center;">Daily Reminder</h1>
      <p style="font-size: 16px; line-height: 1.6; color: #a3a3a3;">
        Hey {display_name or "there"}!<br><br>
        You haven't completed your daily check-in yet. Don't break your streak!<br><br>
        Every day counts towards building unbreakable habits. Take a few minutes to log your progress now.
      </p>
      <a href="{settings.APP_URL}/dashboard"
         style="display: inline-block; background: #22c55e; color: white; padding: 14px 28px; border-radius: 12px; text-decoration: none;">
        Complete Check-in
      </a>
      <p style="text-align: center; font-size: 12px; color: #737373; margin-top: 40px;">
        You received this email because you enabled daily reminders.
        Manage your notification settings in the app.
      </p>
    </div>
  </body>
</html>"""


async def send_reminder_email(client: httpx.AsyncClient, to: str, display_name: str) -> None:
    """Send one reminder through the Resend API. Raises on any non-2xx response."""
    resp = await client.post(
        settings.RESEND_API_URL,
        headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
        json={
            "from": settings.REMINDER_FROM_EMAIL,
            "to": to,
            "subject": "Don't forget your daily check-in!",
            "html": reminder_html(display_name),
        },
    )
    if resp.status_code >= 300:
        raise RuntimeError(f"Failed to send email: {resp.text}")


async def get_email_client():
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        yield client

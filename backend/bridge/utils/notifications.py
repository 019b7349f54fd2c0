# bridge/utils/notifications.py
"""Transactional email via the Resend HTTP API."""
from typing import Optional

import httpx

from bridge.errors import ConfigurationError
from bridge.utils.logging import logger


class EmailClient:
    """Sends one email per call. Raises on failure; callers decide whether that is fatal."""

    def __init__(self, api_key: str, sender: str, api_url: str = "https://api.resend.com/emails", timeout_seconds: float = 10.0):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds

    async def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> Optional[str]:
        """
        Returns:
            Provider message id

        Raises:
            ConfigurationError: RESEND_API_KEY not set
            httpx.HTTPError: request failed or non-2xx response
        """
        if not self.api_key:
            raise ConfigurationError("RESEND_API_KEY", "email delivery")

        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        if text:
            payload["text"] = text

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()

        message_id = response.json().get("id")
        logger.info("Email sent", extra={"subject": subject, "message_id": message_id})
        return message_id


def welcome_email(plan: str, app_url: str) -> tuple[str, str, str]:
    """(subject, html, text) for a completed checkout."""
    login_url = f"{app_url.rstrip('/')}/login"
    subject = "🎉 Welcome to Bridge - Your subscription is active"
    html = f"""
    <html>
      <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <h1 style="color: #667eea;">Welcome to Bridge!</h1>
        <p>Thank you for subscribing to Bridge! Your payment was successful and your <strong>{plan}</strong> plan is now active.</p>
        <p>Sign in with this email address to start translating documents:</p>
        <p style="text-align: center; margin: 30px 0;">
          <a href="{login_url}" style="background: #667eea; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600;">Sign in to Bridge</a>
        </p>
        <p style="font-size: 14px; color: #666;">Or copy and paste this link into your browser:<br>{login_url}</p>
      </body>
    </html>
    """
    text = f"""Welcome to Bridge!

Your payment was successful and your {plan} plan is now active.
Sign in to start translating documents: {login_url}
"""
    return subject, html, text


def payment_failed_email(app_url: str) -> tuple[str, str, str]:
    billing_url = f"{app_url.rstrip('/')}/settings/billing"
    subject = "Action needed: your Bridge payment failed"
    html = f"""
    <html>
      <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <h2 style="color: #dc2626;">We couldn't process your payment</h2>
        <p>Your latest Bridge invoice could not be paid. Please update your payment method to keep your subscription active.</p>
        <p><a href="{billing_url}">Update payment method</a></p>
      </body>
    </html>
    """
    text = f"""We couldn't process your payment.

Please update your payment method to keep your Bridge subscription active:
{billing_url}
"""
    return subject, html, text

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib
from tenacity import retry, stop_after_attempt, wait_exponential

from core.breaker import breaker
from core.settings import settings

logger = logging.getLogger(__name__)


def _build_message(email: str, subject: str, html_content: str) -> MIMEMultipart:
    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = settings.EMAIL_USER or "no-reply@sakany.local"
    message["To"] = email
    message.attach(MIMEText(html_content, "html"))
    return message


@retry(stop=stop_after_attempt(2), wait=wait_exponential(multiplier=1, min=1, max=5))
async def _deliver(message: MIMEMultipart):
    await aiosmtplib.send(
        message,
        hostname=settings.EMAIL_SERVER,
        port=settings.EMAIL_PORT,
        username=settings.EMAIL_USER,
        password=settings.EMAIL_PASSWORD,
        start_tls=settings.EMAIL_USE_TLS,
    )


async def _send(email: str, subject: str, html_content: str):
    if not settings.EMAIL_SERVER:
        logger.warning("EMAIL_SERVER is not configured; '%s' to %s not sent", subject, email)
        return

    async def handler():
        try:
            await _deliver(_build_message(email, subject, html_content))
        except Exception as e:
            logger.error("Error sending '%s' email to %s: %s", subject, email, e)
            raise

    return await breaker.call(handler)


async def send_two_factor_code(email: str, code: str, name: str):
    html_content = f"""
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6;">
        <h2>Your Sakany verification code</h2>
        <p>Hello {name},</p>
        <p>Use this code to finish signing in: <strong>{code}</strong></p>
        <p>The code expires in {settings.TWO_FACTOR_CODE_TTL_SECONDS // 60} minutes.</p>
        <p>Best regards,<br>The Sakany Team</p>
    </body>
    </html>
    """
    await _send(email, "Your verification code", html_content)


async def send_password_reset_link(email: str, token: str, name: str):
    link = f"{settings.FRONTEND_URL}/reset-password?token={token}"
    html_content = f"""
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6;">
        <h2>Password reset</h2>
        <p>Hello {name},</p>
        <p>Follow <a href="{link}">this link</a> to choose a new password.</p>
        <p>If you did not ask for a reset you can ignore this email.</p>
        <p>Best regards,<br>The Sakany Team</p>
    </body>
    </html>
    """
    await _send(email, "Reset your password", html_content)

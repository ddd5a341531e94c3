"""
Transactional email over SMTP.

Messages are sent with Django's mail framework (EMAIL_* settings) as
multipart text + HTML.
"""
import logging
from html import escape
from typing import Optional

from django.conf import settings
from django.core.mail import EmailMultiAlternatives

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when an email cannot be handed to the SMTP server."""
    pass


def send_email(to: str, subject: str, html: str, text: Optional[str] = None) -> None:
    """
    Send one email.

    Raises:
        EmailDeliveryError: If the SMTP backend rejects the message
    """
    message = EmailMultiAlternatives(
        subject=subject,
        body=text or subject,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to],
    )
    message.attach_alternative(html, 'text/html')
    try:
        message.send(fail_silently=False)
    except Exception as e:
        logger.error(f"Failed to send '{subject}' email: {e}")
        raise EmailDeliveryError(str(e))
    logger.info(f"Sent '{subject}' email")


def send_verification_email(to: str, token: str) -> None:
    verification_url = f"{settings.FRONTEND_BASE_URL}/auth/verify-email?token={token}"
    send_email(
        to=to,
        subject='Verify your email address',
        html=(
            '<p>Welcome! Please verify your email by clicking the link below:</p>'
            f'<p><a href="{verification_url}">{verification_url}</a></p>'
            '<p>If you did not sign up, please ignore this email.</p>'
        ),
        text=f'Welcome! Please verify your email by visiting: {verification_url}',
    )


def send_password_reset_email(to: str, token: str) -> None:
    reset_url = f"{settings.FRONTEND_BASE_URL}/auth/reset-password?token={token}"
    send_email(
        to=to,
        subject='Reset your password',
        html=(
            '<p>We received a request to reset your LegisEye password.</p>'
            f'<p><a href="{reset_url}">{reset_url}</a></p>'
            '<p>This link expires in one hour. If you did not ask for it, ignore this email.</p>'
        ),
        text=f'Reset your password by visiting: {reset_url} (expires in one hour)',
    )


def send_team_invitation_email(
    to: str,
    team_name: str,
    inviter_name: str,
    role: str,
    token: str,
    message: Optional[str] = None,
) -> None:
    accept_url = f"{settings.FRONTEND_BASE_URL}/teams/accept-invitation?token={token}"
    personal = (
        f'<blockquote style="border-left:3px solid #0ea5e9;padding-left:12px;color:#555">'
        f'{escape(message)}</blockquote>'
        if message else ''
    )
    html = f"""
      <div style="font-family:sans-serif;max-width:560px;margin:0 auto">
        <h2 style="color:#0ea5e9">You've been invited to join {escape(team_name)}</h2>
        <p>{escape(inviter_name)} has invited you to join <strong>{escape(team_name)}</strong>
           on LegisEye as a <strong>{escape(role.lower())}</strong>.</p>
        {personal}
        <p><a href="{accept_url}"
              style="display:inline-block;background:#0ea5e9;color:#fff;padding:10px 18px;
                     border-radius:6px;text-decoration:none">Accept invitation</a></p>
        <p style="color:#888;font-size:12px">This invitation expires in
           {settings.INVITATION_TTL_DAYS} days.</p>
      </div>
    """
    send_email(
        to=to,
        subject=f"You've been invited to join {team_name} on LegisEye",
        html=html,
        text=(
            f"{inviter_name} has invited you to join {team_name} on LegisEye as a "
            f"{role.lower()}. Accept the invitation: {accept_url}"
        ),
    )

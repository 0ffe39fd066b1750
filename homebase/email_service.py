"""
Email Service using Resend
Templates are written in MJML and compiled to HTML before sending
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import APP_URL, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    follow_up_reminder_template,
    partner_application_received_template,
    partner_approved_template,
    partner_payout_template,
    workflow_update_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e

    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    html = getattr(result, "html", None)
    return html if html is not None else str(result)


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


async def send_partner_application_received_email(
    to: str, full_name: str, referral_code: str
) -> dict:
    return await send_email(
        to=to,
        subject="We received your HomeBase partner application",
        mjml_content=partner_application_received_template(full_name, referral_code),
    )


async def send_partner_approved_email(
    to: str, partner_name: str, referral_code: str, onboarding_url: str
) -> dict:
    return await send_email(
        to=to,
        subject="Welcome to the HomeBase partner program",
        mjml_content=partner_approved_template(partner_name, referral_code, onboarding_url),
    )


async def send_partner_payout_email(
    to: str, partner_name: str, amount_cents: int, transfer_id: str, commissions_count: int
) -> dict:
    return await send_email(
        to=to,
        subject=f"Your HomeBase payout of ${amount_cents / 100:,.2f} is on the way",
        mjml_content=partner_payout_template(
            partner_name, amount_cents, transfer_id, commissions_count
        ),
    )


async def send_notification_email(
    to: str, title: str, message: str, action_url: Optional[str] = None
) -> dict:
    """Email copy of an in-app notification"""
    link = f"{APP_URL}{action_url}" if action_url and action_url.startswith("/") else action_url
    return await send_email(
        to=to,
        subject=title,
        mjml_content=workflow_update_template(title, message, link),
    )


async def send_follow_up_reminder_email(
    to: str, title: str, message: str, action_url: Optional[str] = None
) -> dict:
    link = f"{APP_URL}{action_url}" if action_url and action_url.startswith("/") else action_url
    return await send_email(
        to=to,
        subject=title,
        mjml_content=follow_up_reminder_template(title, message, link),
    )

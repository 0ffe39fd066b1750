"""
MJML Email Templates
Partner program and workflow emails
"""

from typing import Optional

THEME = {
    "primary": "#2563eb",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML wrapper shared by every email"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="18px 40px" font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 20px">
          <mj-column>
            <mj-text font-size="22px" font-weight="700" color="{THEME['text_primary']}">{title}</mj-text>
            {content_sections}
          </mj-column>
        </mj-section>
        {cta_section}
        <mj-section padding="16px 0">
          <mj-column>
            <mj-text align="center" font-size="12px" color="{THEME['text_muted']}">
              HomeBase - home services, handled.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def partner_application_received_template(full_name: str, referral_code: str) -> str:
    content = f"""
    <mj-text>Hi {full_name},</mj-text>
    <mj-text>Thanks for applying to the HomeBase partner program. Our team reviews
      every application and will get back to you shortly.</mj-text>
    <mj-text>Your reserved referral code is <strong>{referral_code}</strong>.</mj-text>
    """
    return get_base_template("Application received", "We're reviewing your application", content)


def partner_approved_template(partner_name: str, referral_code: str, onboarding_url: str) -> str:
    content = f"""
    <mj-text>Hi {partner_name},</mj-text>
    <mj-text>Your partner application has been approved. Customers who use code
      <strong>{referral_code}</strong> get a discount and you earn commission on their payments.</mj-text>
    <mj-text>Finish setting up your payout account to start receiving commissions.</mj-text>
    """
    return get_base_template(
        "You're a HomeBase partner",
        "Your partner application was approved",
        content,
        cta_url=onboarding_url,
        cta_label="Set up payouts",
    )


def partner_payout_template(
    partner_name: str, amount_cents: int, transfer_id: str, commissions_count: int
) -> str:
    content = f"""
    <mj-text>Hi {partner_name},</mj-text>
    <mj-text>We just sent <strong>${amount_cents / 100:,.2f}</strong> covering
      {commissions_count} commission(s) to your connected account.</mj-text>
    <mj-text font-size="13px" color="{THEME['text_muted']}">Transfer reference: {transfer_id}</mj-text>
    """
    return get_base_template("Payout sent", "Your partner commissions are on the way", content)


def workflow_update_template(title: str, message: str, action_url: Optional[str] = None) -> str:
    content = f"<mj-text>{message}</mj-text>"
    return get_base_template(title, message, content, cta_url=action_url, cta_label="View progress")


def follow_up_reminder_template(title: str, message: str, action_url: Optional[str] = None) -> str:
    content = f"""
    <mj-text>{message}</mj-text>
    <mj-text font-size="13px" color="{THEME['text_muted']}">You are receiving this because of a recent HomeBase service visit.</mj-text>
    """
    return get_base_template(title, message, content, cta_url=action_url, cta_label="Open HomeBase")

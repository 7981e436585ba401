"""
Account and team email templates.
"""

from typing import Optional

from libs.common.config import get_settings
from libs.common.emails.core import send_email
from services.communications_service.templates.base import (
    TEAMS,
    cta_button,
    detail_box,
    note_box,
    sign_off,
    wrap_html,
)


async def send_company_invitation_email(
    to_email: str,
    company_name: str,
    inviter_name: str,
    role: str,
    token: str,
    message: Optional[str] = None,
    expires_in_days: int = 7,
) -> bool:
    """
    Invite someone to join a company account.

    The link points at the storefront's invitation page, which accepts or
    declines through the invitations API.
    """
    settings = get_settings()
    accept_url = f"{settings.FRONTEND_URL}/invitations/{token}"
    role_label = role.replace("_", " ").title()

    subject = f"You're invited to join {company_name} on {settings.APP_NAME}"

    message_text = f'\nMessage from {inviter_name}:\n"{message}"\n' if message else ""
    body = f"""Hello,

{inviter_name} has invited you to join {company_name} on {settings.APP_NAME} as a {role_label}.
{message_text}
Accept the invitation here:
{accept_url}

This invitation expires in {expires_in_days} days. If you weren't expecting it, you can ignore this email.

The Noor Team
"""

    body_html = (
        "<p>Hello,</p>"
        f"<p><strong>{inviter_name}</strong> has invited you to join "
        f"<strong>{company_name}</strong> on {settings.APP_NAME}.</p>"
        + detail_box(
            {"Company": company_name, "Role": role_label, "Invited by": inviter_name},
            accent=TEAMS,
        )
    )
    if message:
        body_html += note_box(
            f"<em>{message}</em>",
            title=f"Message from {inviter_name}",
            accent=TEAMS,
        )
    body_html += (
        cta_button("Accept Invitation", accept_url, accent=TEAMS)
        + f"<p>This invitation expires in {expires_in_days} days. "
        "If you weren't expecting it, you can ignore this email.</p>"
        + sign_off()
    )

    html_body = wrap_html(
        title="You're Invited!",
        subtitle=f"Join {company_name}",
        body_html=body_html,
        accent=TEAMS,
        preheader=f"{inviter_name} invited you to join {company_name}",
    )

    return await send_email(to_email, subject, body, html_body)

"""
Shared email layout for Noor.

Email clients strip ``<style>`` blocks unpredictably, so the layout is a
single table with inline styles. Each template picks an accent colour:

- ORDERS: teal, order confirmations and shipping updates
- TEAMS: indigo, company invitations and membership changes

Usage:
    from services.communications_service.templates.base import (
        ORDERS, detail_box, wrap_html,
    )

    html = wrap_html(
        title="Order Confirmed",
        subtitle="Order #NR-20260101-0001",
        body_html="<p>Hello,</p>" + detail_box({"Total": "AED 230.00"}),
        accent=ORDERS,
    )
"""

from dataclasses import dataclass
from html import escape

from libs.common.config import get_settings


@dataclass(frozen=True)
class Accent:
    strong: str
    tint: str


ORDERS = Accent(strong="#0f766e", tint="#f0fdfa")
TEAMS = Accent(strong="#4f46e5", tint="#eef2ff")

_TEXT = "color: #334155; font-size: 15px; line-height: 1.6;"
_FONT = "-apple-system, 'Segoe UI', Roboto, Arial, sans-serif"


def wrap_html(
    title: str,
    body_html: str,
    subtitle: str = "",
    accent: Accent = ORDERS,
    preheader: str = "",
) -> str:
    """Place ``body_html`` inside the branded header and footer."""
    settings = get_settings()
    site = settings.FRONTEND_URL.rstrip("/")

    hidden = (
        f'<div style="display: none; max-height: 0; overflow: hidden;">'
        f"{escape(preheader)}</div>"
        if preheader
        else ""
    )
    subtitle_html = (
        f'<p style="margin: 6px 0 0; color: #ffffff; opacity: 0.85; '
        f'font-size: 15px;">{subtitle}</p>'
        if subtitle
        else ""
    )

    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width, initial-scale=1.0" />
<title>{escape(title)}</title>
</head>
<body style="margin: 0; padding: 0; background: #f1f5f9; font-family: {_FONT};">
{hidden}
<table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background: #f1f5f9; padding: 32px 12px;">
<tr><td align="center">
<table role="presentation" width="600" cellpadding="0" cellspacing="0" style="max-width: 600px; width: 100%; background: #ffffff; border-radius: 12px; overflow: hidden;">
<tr><td style="background: {accent.strong}; padding: 28px 32px;">
<p style="margin: 0 0 16px; color: #ffffff; font-size: 13px; letter-spacing: 2px; text-transform: uppercase;">{escape(settings.APP_NAME)}</p>
<h1 style="margin: 0; color: #ffffff; font-size: 22px;">{title}</h1>
{subtitle_html}
</td></tr>
<tr><td style="padding: 28px 32px; {_TEXT}">
{body_html}
</td></tr>
<tr><td style="padding: 20px 32px; background: #f8fafc; text-align: center; font-size: 12px; color: #94a3b8;">
<p style="margin: 0 0 4px;">{escape(settings.APP_NAME)} &middot; Dubai, United Arab Emirates</p>
<p style="margin: 0;"><a href="{site}" style="color: {accent.strong}; text-decoration: none;">{site}</a>
&nbsp;&middot;&nbsp;<a href="mailto:{settings.SUPPORT_EMAIL}" style="color: {accent.strong}; text-decoration: none;">{settings.SUPPORT_EMAIL}</a></p>
</td></tr>
</table>
</td></tr>
</table>
</body>
</html>"""


def detail_box(items: dict[str, str], accent: Accent = ORDERS) -> str:
    """Label/value rows; empty values are skipped."""
    rows = "".join(
        f'<tr><td style="padding: 4px 12px 4px 0; color: #64748b;">{label}</td>'
        f'<td style="padding: 4px 0; font-weight: 600; color: #1e293b;">{value}</td></tr>'
        for label, value in items.items()
        if value
    )
    return (
        f'<table role="presentation" cellpadding="0" cellspacing="0" '
        f'style="margin: 16px 0; padding: 12px 16px; width: 100%; font-size: 14px; '
        f'background: {accent.tint}; border-left: 4px solid {accent.strong};">'
        f"{rows}</table>"
    )


def note_box(content: str, title: str = "", accent: Accent = ORDERS) -> str:
    heading = f"<strong>{title}</strong><br/>" if title else ""
    return (
        f'<div style="margin: 16px 0; padding: 14px 18px; background: {accent.tint}; '
        f'border-left: 4px solid {accent.strong};">{heading}{content}</div>'
    )


def cta_button(label: str, url: str, accent: Accent = ORDERS) -> str:
    return (
        f'<p style="text-align: center; margin: 24px 0;">'
        f'<a href="{url}" style="display: inline-block; padding: 12px 28px; '
        f"background: {accent.strong}; color: #ffffff; border-radius: 8px; "
        f'font-weight: 600; text-decoration: none;">{label}</a></p>'
    )


def sign_off(extra_message: str = "") -> str:
    closing = f"<p>{extra_message}</p>" if extra_message else ""
    team = escape(get_settings().APP_NAME)
    return closing + f"<p>Warm regards,<br/><strong>The {team} Team</strong></p>"

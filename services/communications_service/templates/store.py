"""
Store-related email templates.
"""

from decimal import Decimal
from typing import Optional

from libs.common.currency import format_aed
from libs.common.emails.core import send_email
from services.communications_service.templates.base import (
    ORDERS,
    note_box,
    sign_off,
    wrap_html,
)

_ROW = "padding: 10px; border-bottom: 1px solid #e2e8f0;"
_HEAD = (
    "padding: 10px; color: #64748b; font-size: 12px; "
    "text-transform: uppercase; border-bottom: 2px solid #e2e8f0;"
)
_TOTAL_LINE = (
    "margin: 5px 0; display: flex; justify-content: space-between; font-size: 14px;"
)


def _summary_lines(
    subtotal: Decimal, discount: Decimal, shipping: Decimal, tax: Decimal
) -> list[tuple[str, str]]:
    lines = [("Subtotal", format_aed(subtotal))]
    if discount > 0:
        lines.append(("Discount", f"-{format_aed(discount)}"))
    lines.append(("Shipping", format_aed(shipping)))
    lines.append(("Tax", format_aed(tax)))
    return lines


async def send_store_order_confirmation_email(
    to_email: str,
    order_number: str,
    items: list[dict],  # [{"name": str, "quantity": int, "price": Decimal}]
    subtotal: Decimal,
    discount: Decimal,
    shipping: Decimal,
    tax: Decimal,
    total: Decimal,
    shipping_address: Optional[str] = None,
) -> bool:
    """
    Send order confirmation email once payment has been received.
    """
    subject = f"Order Confirmed - #{order_number}"
    summary = _summary_lines(subtotal, discount, shipping, tax)

    items_text = "\n".join(
        f"  - {item['name']} x{item['quantity']} - {format_aed(item['price'])}"
        for item in items
    )
    summary_text = "\n".join(f"{label}: {value}" for label, value in summary)
    address_text = (
        f"\nShipping to: {shipping_address}\n" if shipping_address else ""
    )

    body = f"""Hello,

Thank you for your order! We've received your payment and your order is now being prepared.

Order #{order_number}

Items:
{items_text}

{summary_text}
Total: {format_aed(total)}
{address_text}
We'll let you know as soon as your order ships.

The Noor Team
"""

    items_html = "".join(
        f"<tr><td style='{_ROW}'>{item['name']}</td>"
        f"<td style='{_ROW} text-align: center;'>{item['quantity']}</td>"
        f"<td style='{_ROW} text-align: right;'>{format_aed(item['price'])}</td></tr>"
        for item in items
    )
    summary_html = "".join(
        f'<p style="{_TOTAL_LINE}"><span>{label}</span><span>{value}</span></p>'
        for label, value in summary
    )
    table_html = (
        '<div style="background: #f8fafc; border-radius: 8px; padding: 20px; margin: 20px 0;">'
        '<table style="width: 100%; border-collapse: collapse;">'
        "<thead><tr>"
        f'<th style="{_HEAD} text-align: left;">Item</th>'
        f'<th style="{_HEAD} text-align: center;">Qty</th>'
        f'<th style="{_HEAD} text-align: right;">Price</th>'
        "</tr></thead>"
        f"<tbody>{items_html}</tbody></table>"
        '<div style="margin-top: 16px; padding-top: 16px; border-top: 2px solid #e2e8f0;">'
        f"{summary_html}"
        '<p style="margin: 10px 0 0; display: flex; justify-content: space-between; '
        'font-weight: 700; font-size: 18px; color: #1e293b;">'
        f"<span>Total</span><span>{format_aed(total)}</span></p>"
        "</div></div>"
    )

    body_html = (
        "<p>Hello,</p>"
        "<p>Thank you for your order! We've received your payment and your order is now being prepared.</p>"
        + table_html
    )
    if shipping_address:
        body_html += note_box(shipping_address, title="Shipping Address")
    body_html += "<p>We'll let you know as soon as your order ships.</p>" + sign_off(
        "Thank you for shopping with Noor!"
    )

    html_body = wrap_html(
        title="Order Confirmed!",
        subtitle=f"Order #{order_number}",
        body_html=body_html,
        accent=ORDERS,
        preheader=f"Order #{order_number} confirmed - {format_aed(total)}",
    )

    return await send_email(to_email, subject, body, html_body)

"""
MJML Email Templates
All transactional email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .config import INVITE_TOKEN_EXPIRE_DAYS, SITE_URL

# Studio theme colors - warm neutrals with a rose accent
THEME = {
    "primary": "#96604a",
    "primary_dark": "#6f4535",
    "primary_light": "#f5ebe6",
    "background": "#faf6f1",
    "card_bg": "#ffffff",
    "text_primary": "#1c1917",
    "text_secondary": "#44403c",
    "text_muted": "#78716c",
    "border": "#e7e5e4",
    "success": "#4e6b51",
    "warning": "#d97706",
    "danger": "#b91c1c",
}

STUDIO_NAME = "T Creative Studio"


def format_cents(amount_in_cents: Optional[int]) -> str:
    """Format an integer cent amount as dollars, e.g. 4500 -> $45.00"""
    return f"${(amount_in_cents or 0) / 100:,.2f}"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="999px"
              padding="18px 40px"
              font-size="16px">
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
          <mj-all font-family="Georgia, 'Times New Roman', serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['card_bg']}" padding="32px 20px 0 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" letter-spacing="4px" color="{THEME['primary']}">
              T CREATIVE STUDIO
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="16px 0 32px 0" />
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="{THEME['card_bg']}" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="{THEME['text_muted']}" padding="0">
              {STUDIO_NAME} · San Jose, CA
            </mj-text>
            <mj-text align="center" font-size="12px" color="{THEME['text_muted']}" padding="12px 0 0 0">
              You can manage email preferences from your account settings.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_row(label: str, value: str) -> str:
    return f"""
    <mj-text padding="4px 0">
      <span style="color: {THEME['text_muted']};">{label}:</span> <strong>{value}</strong>
    </mj-text>
    """


def order_confirmation_template(
    client_name: str,
    order_number: str,
    items: list[dict],
    total_in_cents: int,
    fulfillment_method: str,
    payment_url: Optional[str] = None,
) -> str:
    """Shop order confirmation. items: [{title, quantity, price_in_cents}]"""
    rows = "".join(
        f"""
        <tr>
          <td style="padding: 6px 0;">{item['title']} × {item['quantity']}</td>
          <td style="padding: 6px 0; text-align: right;">{format_cents(item['price_in_cents'] * item['quantity'])}</td>
        </tr>
        """
        for item in items
    )
    pickup_note = (
        "Complete your payment online using the button below, then pick up at the studio."
        if fulfillment_method == "pickup_online"
        else "Pay at pickup. We'll email you when your order is ready."
    )
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>Thank you for your order! Here's your summary for <strong>{order_number}</strong>.</mj-text>
    <mj-table font-size="15px" color="{THEME['text_secondary']}">
      {rows}
      <tr style="border-top: 1px solid {THEME['border']};">
        <td style="padding: 10px 0;"><strong>Total</strong></td>
        <td style="padding: 10px 0; text-align: right;"><strong>{format_cents(total_in_cents)}</strong></td>
      </tr>
    </mj-table>
    <mj-text color="{THEME['text_muted']}">{pickup_note}</mj-text>
    """
    return get_base_template(
        title="Order Confirmed",
        preview_text=f"Your order {order_number} is confirmed",
        content_sections=content,
        cta_url=payment_url,
        cta_label="Pay Now" if payment_url else None,
    )


ORDER_STATUS_COPY = {
    "in_progress": ("Payment Received", "We've received your payment and started on your order."),
    "ready_for_pickup": ("Ready for Pickup", "Your order is ready! Stop by the studio any time during open hours."),
    "completed": ("Order Complete", "Your order is complete. We hope you love it!"),
    "cancelled": ("Order Cancelled", "Your order has been cancelled. Reply to this email with any questions."),
}


def order_status_update_template(client_name: str, order_number: str, title: str, status: str) -> str:
    heading, message = ORDER_STATUS_COPY.get(
        status, ("Order Update", f"Your order status is now {status.replace('_', ' ')}.")
    )
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>{message}</mj-text>
    {_detail_row("Order", order_number)}
    {_detail_row("Item", title)}
    """
    return get_base_template(
        title=heading,
        preview_text=f"{heading}: {title}",
        content_sections=content,
        cta_url=f"{SITE_URL}/client/orders",
        cta_label="View Order",
    )


def booking_reminder_template(
    client_name: str,
    service_name: str,
    starts_at_label: str,
    duration_minutes: int,
    location: Optional[str],
    hours_until: int,
) -> str:
    when = "tomorrow" if hours_until <= 24 else "in two days"
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>This is a friendly reminder that your appointment is {when}.</mj-text>
    {_detail_row("Service", service_name)}
    {_detail_row("When", starts_at_label)}
    {_detail_row("Duration", f"{duration_minutes} minutes")}
    {_detail_row("Where", location or STUDIO_NAME)}
    <mj-text color="{THEME['text_muted']}" padding="16px 0 0 0">
      Need to reschedule? Please let us know at least 24 hours ahead.
    </mj-text>
    """
    return get_base_template(
        title="Appointment Reminder",
        preview_text=f"Your {service_name} appointment is {when}",
        content_sections=content,
        cta_url=f"{SITE_URL}/client/bookings",
        cta_label="View Booking",
    )


def review_request_template(client_name: str, service_name: str, booking_id: int) -> str:
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>Thank you for visiting us for your <strong>{service_name}</strong> appointment!</mj-text>
    <mj-text>
      We'd love to hear how it went. Leaving a review takes a minute and earns you loyalty points.
    </mj-text>
    """
    return get_base_template(
        title="How Was Your Visit?",
        preview_text="Tell us about your appointment",
        content_sections=content,
        cta_url=f"{SITE_URL}/client/bookings?review={booking_id}",
        cta_label="Leave a Review",
    )


def payment_receipt_template(
    client_name: str,
    service_name: str,
    amount_in_cents: int,
    tip_in_cents: int,
    receipt_url: Optional[str],
    is_deposit: bool = False,
) -> str:
    content = f"""
    <mj-text>Hi {client_name},</mj-text>
    <mj-text>We received your {"deposit" if is_deposit else "payment"}. Thank you!</mj-text>
    {_detail_row("Service", service_name)}
    {_detail_row("Amount", format_cents(amount_in_cents))}
    """
    if tip_in_cents:
        content += _detail_row("Tip", format_cents(tip_in_cents))
    return get_base_template(
        title="Payment Received",
        preview_text=f"Receipt for {service_name}",
        content_sections=content,
        cta_url=receipt_url,
        cta_label="View Receipt" if receipt_url else None,
    )


def birthday_greeting_template(client_name: str) -> str:
    content = f"""
    <mj-text>Happy birthday, {client_name}!</mj-text>
    <mj-text>
      Everyone at {STUDIO_NAME} is wishing you a beautiful year. Treat yourself this month,
      your birthday perk is waiting at your next visit.
    </mj-text>
    """
    return get_base_template(
        title="Happy Birthday!",
        preview_text="A little something for your birthday",
        content_sections=content,
        cta_url=f"{SITE_URL}/client/book",
        cta_label="Book a Treat",
    )


def invite_template(invite_url: str, email: str) -> str:
    content = f"""
    <mj-text>Hi there,</mj-text>
    <mj-text>
      You've been invited to join the {STUDIO_NAME} team. Sign in with <strong>{email}</strong>
      using the button below to set up your assistant account.
    </mj-text>
    <mj-text color="{THEME['text_muted']}">This invite link expires in {INVITE_TOKEN_EXPIRE_DAYS} days.</mj-text>
    """
    return get_base_template(
        title="You're Invited",
        preview_text=f"Join the {STUDIO_NAME} team",
        content_sections=content,
        cta_url=invite_url,
        cta_label="Accept Invite",
    )

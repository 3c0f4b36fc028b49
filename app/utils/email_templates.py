"""
HTML bodies for outbound mail.
Every interpolated value goes through html.escape.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from html import escape
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from app.config import settings

Number = Union[int, float, Decimal, str, None]


def format_inr(amount: Number) -> str:
    """
    Format a rupee amount in whole rupees with Indian digit grouping,
    e.g. 1250000 -> ₹12,50,000. Display strings such as "50 Lakh" are
    returned unchanged.
    """
    if amount in (None, ""):
        return "₹0"
    try:
        value = Decimal(str(amount).replace(",", "").strip())
    except InvalidOperation:
        return str(amount)
    if not value.is_finite():
        return str(amount)
    value = value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    negative = value < 0

    digits = str(int(abs(value)))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups) + "," + tail

    result = f"₹{digits}"
    return f"-{result}" if negative else result


def _layout(title: str, body: str) -> str:
    app_name = escape(settings.app_name)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; '
        'border: 1px solid #e0e0e0; border-radius: 10px;">'
        f'<h1 style="color: #2563eb; text-align: center;">{app_name}</h1>'
        f'<h2 style="color: #333;">{escape(title)}</h2>'
        f"{body}"
        '<hr style="border: none; border-top: 1px solid #e0e0e0; margin: 30px 0;">'
        f'<p style="color: #999; font-size: 12px; text-align: center;">&copy; {datetime.now().year} '
        f"{app_name}. All rights reserved.</p></div>"
    )


def _table(rows: Iterable[Tuple[str, Any]]) -> str:
    cells = "".join(
        f'<tr><td style="padding: 8px; border: 1px solid #e2e8f0; font-weight: 600;">{escape(label)}</td>'
        f'<td style="padding: 8px; border: 1px solid #e2e8f0;">{escape(str(value))}</td></tr>'
        for label, value in rows
        if value not in (None, "")
    )
    return f'<table style="border-collapse: collapse; width: 100%;">{cells}</table>'


def _when(value: Union[date, datetime, str, None]) -> str:
    if isinstance(value, datetime):
        return value.strftime("%d %b %Y, %I:%M %p")
    if isinstance(value, date):
        return value.strftime("%d %b %Y")
    return value or ""


OTP_PURPOSES = {
    "registration": ("Email Verification", "Please use the following code to verify your email address:"),
    "password-reset": ("Password Reset", "Use the following code to reset your password:"),
    "account-deletion": ("Confirm Account Deletion", "Use the following code to confirm deleting your account:"),
}


def otp_email(code: str, name: Optional[str] = None, purpose: str = "registration") -> Tuple[str, str, str]:
    """Returns (subject, html, text) for a one-time code."""
    title, intro = OTP_PURPOSES.get(purpose, OTP_PURPOSES["registration"])
    minutes = settings.otp_expire_minutes
    greeting = f"Hello {escape(name)}," if name else "Hello,"
    body = (
        f"<p>{greeting}</p><p>{escape(intro)}</p>"
        '<div style="background-color: #f3f4f6; padding: 20px; border-radius: 8px; text-align: center;">'
        f'<h1 style="color: #2563eb; font-size: 36px; letter-spacing: 8px; margin: 0;">{escape(code)}</h1></div>'
        f"<p><strong>This code will expire in {minutes} minutes.</strong></p>"
        "<p>If you didn't request this, please ignore this email.</p>"
    )
    subject = f"{title} - {settings.app_name}"
    text = f"Your {settings.app_name} code is: {code}. It expires in {minutes} minutes."
    return subject, _layout(title, body), text


def booking_confirmation_email(booking: Dict[str, Any]) -> Tuple[str, str]:
    visitors = ", ".join(n for n in (booking.get("person1_name"), booking.get("person2_name"),
                                     booking.get("person3_name")) if n)
    body = "<p>Your site visit has been booked.</p>" + _table([
        ("Booking ID", booking.get("id")),
        ("Property", booking.get("property_title")),
        ("Visit date", booking.get("visit_date")),
        ("Visit time", booking.get("visit_time")),
        ("Visitors", visitors),
        ("Payment", booking.get("payment_method")),
        ("Amount", format_inr(booking.get("payment_amount")) if booking.get("payment_amount") else None),
    ])
    return f"Site Visit Confirmed - {settings.app_name}", _layout("Site Visit Confirmed", body)


def admin_booking_notification_email(booking: Dict[str, Any], user: Dict[str, Any]) -> Tuple[str, str]:
    body = "<p>A new site visit was booked.</p>" + _table([
        ("Booking ID", booking.get("id")),
        ("Property", booking.get("property_title")),
        ("Location", booking.get("property_location")),
        ("Visit", f"{booking.get('visit_date')} {booking.get('visit_time')}"),
        ("Visitors", booking.get("number_of_people")),
        ("User", user.get("name")),
        ("Email", user.get("email")),
        ("Phone", user.get("phone")),
        ("Payment", f"{booking.get('payment_method')} / {booking.get('payment_status')}"),
    ])
    return f"New Site Visit Booking #{booking.get('id')}", _layout("New Site Visit Booking", body)


def group_booking_email(details: Dict[str, Any]) -> Tuple[str, str]:
    body = f"<p>Hello {escape(details.get('user_name') or '')}, your unit in the live group is booked.</p>" + _table([
        ("Project", details.get("project_title")),
        ("Developer", details.get("developer")),
        ("Location", details.get("location")),
        ("Unit", details.get("unit_label")),
        ("Amount", format_inr(details.get("amount"))),
        ("Joined", _when(details.get("booked_at"))),
        ("Payment ID", details.get("payment_id")),
    ])
    return (f"Group Property Booking Confirmed - {settings.app_name}",
            _layout("Group Property Booking Confirmed", body))


def admin_group_booking_email(details: Dict[str, Any]) -> Tuple[str, str]:
    body = "<p>A live group unit was booked.</p>" + _table([
        ("Project", details.get("project_title")),
        ("Unit", details.get("unit_label")),
        ("Amount", format_inr(details.get("amount"))),
        ("User", details.get("user_name")),
        ("Email", details.get("user_email")),
        ("Phone", details.get("user_phone")),
        ("Payment ID", details.get("payment_id")),
        ("Booked at", _when(details.get("booked_at"))),
    ])
    return f"New Live Group Booking - {details.get('project_title')}", _layout("New Live Group Booking", body)


def reservation_traveler_email(reservation: Dict[str, Any], listing_title: str) -> Tuple[str, str]:
    body = "<p>Your stay is confirmed. Show the booking code to your host at check-in.</p>" + _table([
        ("Booking code", reservation.get("booking_code")),
        ("Property", listing_title),
        ("Check-in", reservation.get("check_in")),
        ("Check-out", reservation.get("check_out")),
        ("Nights", reservation.get("nights")),
        ("Total", format_inr(reservation.get("total_price"))),
    ])
    return f"Booking Confirmed: {listing_title}", _layout("Your Stay Is Confirmed", body)


def reservation_host_email(reservation: Dict[str, Any], listing_title: str, guest_name: str) -> Tuple[str, str]:
    body = f"<p>{escape(guest_name)} booked {escape(listing_title)}.</p>" + _table([
        ("Check-in", reservation.get("check_in")),
        ("Check-out", reservation.get("check_out")),
        ("Nights", reservation.get("nights")),
        ("Payout", format_inr(reservation.get("total_price"))),
    ])
    return f"New Booking! {guest_name} arrives {reservation.get('check_in')}", _layout("New Booking", body)


def subscription_confirmation_email(user_name: str, plan_name: str, price: Number,
                                    expiry: datetime, credits: int) -> Tuple[str, str]:
    body = f"<p>Hello {escape(user_name or '')}, thank you for subscribing.</p>" + _table([
        ("Plan", plan_name),
        ("Price", format_inr(price)),
        ("Valid until", _when(expiry)),
        ("Property posts", credits),
    ])
    return f"Subscription Activated - {settings.app_name}", _layout("Subscription Activated", body)


def marketing_inquiry_email(inquiry: Dict[str, Any]) -> Tuple[str, str]:
    body = "<p>A new marketing package inquiry was submitted.</p>" + _table([
        ("Name", inquiry.get("name")),
        ("Phone", inquiry.get("phone")),
        ("Address", inquiry.get("address")),
        ("Property price", format_inr(inquiry.get("propertyPrice"))),
        ("Package", inquiry.get("packageTitle")),
        ("Package price", inquiry.get("packagePrice")),
        ("Target", inquiry.get("packageTarget")),
        ("Submitted", _when(datetime.now())),
    ])
    return f"New Marketing Inquiry: {inquiry.get('packageTitle')}", _layout("New Marketing Inquiry", body)


def partner_signup_email(kind: str, signup: Dict[str, Any]) -> Tuple[str, str]:
    rows = [(key.replace("_", " ").title(), value) for key, value in signup.items() if key not in ("id", "created_at")]
    body = f"<p>New {escape(kind)} registration.</p>" + _table(rows)
    return f"New {kind} registration: {signup.get('name')}", _layout(f"New {kind} Registration", body)
